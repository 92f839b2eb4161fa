"""
jobharness: a background-job client with an in-process test harness.

Workers subclass :class:`Worker` and enqueue with ``perform_async``. Under
test, the enqueue path is redirected by the current mode (see
:mod:`jobharness.testing`) into an in-memory queue, inline execution, or the
real Redis submission path.
"""

from .core.client import Client
from .core.exceptions import (
    EmptyQueueError,
    InvalidJobError,
    InvalidModeError,
    JobHarnessError,
    JobSerializationError,
    ResolutionError,
    SubmissionError,
)
from .core.logging import setup_logging
from .core.middleware import Middleware, MiddlewareChain
from .core.worker import BatchAware, Worker

__all__ = [
    "BatchAware",
    "Client",
    "EmptyQueueError",
    "InvalidJobError",
    "InvalidModeError",
    "JobHarnessError",
    "JobSerializationError",
    "Middleware",
    "MiddlewareChain",
    "ResolutionError",
    "SubmissionError",
    "Worker",
    "setup_logging",
]
