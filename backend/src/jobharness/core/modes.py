"""Process-wide testing mode selection.

The harness runs in exactly one of three modes at a time:

- ``fake``: enqueued jobs are stored in the in-memory queue store.
- ``inline``: enqueued jobs run synchronously before the enqueue returns.
- ``disabled``: enqueued jobs go to the real Redis submission path.

Example usage:
    from jobharness.testing import Testing

    Testing.inline()                 # permanent switch
    with Testing.fake():             # scoped override
        HardWorker.perform_async(1)
    # back to inline here, even if the block raised

    Testing.set_mode("fake", body=lambda: HardWorker.perform_async(1))
"""

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from .config import get_settings_instance
from .exceptions import InvalidModeError
from .middleware import MiddlewareChain

logger = logging.getLogger(__name__)


class HarnessMode(str, Enum):
    """Execution modes for the enqueue path."""

    DISABLED = "disabled"
    FAKE = "fake"
    INLINE = "inline"

    @classmethod
    def parse(cls, value: "HarnessMode | str") -> "HarnessMode":
        """Accept a member or its name (case-insensitive, ``disable`` allowed)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            if key == "disable":
                key = "disabled"
            try:
                return cls(key)
            except ValueError:
                pass
        raise InvalidModeError(value)


class ModeOverride:
    """Handle returned by every mode switch.

    The switch has already happened when this object is created. Using it as
    a context manager restores the previous mode on exit, including exit by
    exception; ignoring it leaves the new mode in place.
    """

    def __init__(self, controller: "ModeController", previous: HarnessMode, mode: HarnessMode) -> None:
        self._controller = controller
        self.previous = previous
        self.mode = mode

    def __enter__(self) -> HarnessMode:
        return self.mode

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self._controller._set(self.previous)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ModeOverride):
            return self.mode == other.mode
        return self.mode == other

    def __hash__(self) -> int:
        return hash(self.mode)

    def __repr__(self) -> str:
        return f"ModeOverride(mode={self.mode.value!r}, previous={self.previous.value!r})"


class ModeController:
    """Holds the current mode and the execution-side middleware chain.

    No locking: tests are expected to switch modes from one thread.
    """

    def __init__(self, default: HarnessMode | str | None = None) -> None:
        self._default = default
        self._mode = self._initial_mode()
        self._server_chain: MiddlewareChain | None = None

    def _initial_mode(self) -> HarnessMode:
        if self._default is not None:
            return HarnessMode.parse(self._default)
        return HarnessMode.parse(get_settings_instance().testing_mode)

    def _set(self, mode: HarnessMode) -> None:
        if mode != self._mode:
            logger.debug(
                "Testing mode changed",
                extra={"mode": mode.value, "previous_mode": self._mode.value},
            )
        self._mode = mode

    @property
    def mode(self) -> HarnessMode:
        return self._mode

    def set_mode(self, mode: HarnessMode | str, body: Callable[[], Any] | None = None) -> Any:
        """Switch to ``mode``.

        Without ``body`` the switch is returned as a :class:`ModeOverride`,
        which restores the previous mode when used in a ``with`` block.
        With ``body`` the mode applies only while ``body`` runs and the
        body's return value is returned.
        """
        new_mode = HarnessMode.parse(mode)
        override = ModeOverride(self, self._mode, new_mode)
        self._set(new_mode)
        if body is None:
            return override
        with override:
            return body()

    def disable(self, body: Callable[[], Any] | None = None) -> Any:
        return self.set_mode(HarnessMode.DISABLED, body)

    def fake(self, body: Callable[[], Any] | None = None) -> Any:
        return self.set_mode(HarnessMode.FAKE, body)

    def inline(self, body: Callable[[], Any] | None = None) -> Any:
        return self.set_mode(HarnessMode.INLINE, body)

    def enabled(self) -> bool:
        return self._mode != HarnessMode.DISABLED

    def disabled(self) -> bool:
        return self._mode == HarnessMode.DISABLED

    def is_fake(self) -> bool:
        return self._mode == HarnessMode.FAKE

    def is_inline(self) -> bool:
        return self._mode == HarnessMode.INLINE

    def server_middleware(
        self, configure: Callable[[MiddlewareChain], None] | None = None
    ) -> MiddlewareChain:
        """Return the chain wrapped around every job the harness executes.

        Example:
            Testing.server_middleware(lambda chain: chain.add(AuditMiddleware))
        """
        if self._server_chain is None:
            self._server_chain = MiddlewareChain()
        if configure is not None:
            configure(self._server_chain)
        return self._server_chain

    def reset(self) -> None:
        """Return to the configured default mode and drop middleware (for testing only)."""
        self._set(self._initial_mode())
        self._server_chain = None


# Global mode controller (singleton)
Testing = ModeController()
