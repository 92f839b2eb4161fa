"""Custom exceptions for jobharness.

Every error raised by the harness itself derives from ``JobHarnessError`` so
callers can catch them with a single except clause. Errors raised by worker
code or middleware are never wrapped; they reach the caller unchanged.
"""

from typing import Any


class JobHarnessError(Exception):
    """Base exception for harness operations.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class EmptyQueueError(JobHarnessError):
    """Raised by ``perform_one`` when no job for the worker is queued.

    Example:
        with pytest.raises(EmptyQueueError):
            HardWorker.perform_one()
    """


class ResolutionError(JobHarnessError):
    """Raised when a worker identifier does not map to a registered worker."""

    def __init__(self, worker: str, details: dict[str, Any] | None = None):
        super().__init__(
            f"Unknown worker '{worker}'",
            details=details or {"worker": worker},
        )


class JobSerializationError(JobHarnessError):
    """Raised when a job record cannot be converted to or from JSON."""


class InvalidJobError(JobHarnessError):
    """Raised when a job item handed to the client is malformed."""


class InvalidModeError(JobHarnessError):
    """Raised for an unknown testing mode name."""

    def __init__(self, mode: Any):
        super().__init__(
            f"Unknown testing mode: {mode!r}",
            details={"mode": str(mode), "valid_modes": ["disabled", "fake", "inline"]},
        )


class SubmissionError(JobHarnessError):
    """Raised when the real Redis submission path fails.

    Example:
        try:
            client.raw_push_real(payloads)
        except SubmissionError as e:
            logger.warning(f"Broker unavailable: {e.message}")
    """
