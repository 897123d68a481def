"""
Cancellation context - Carry a cancel signal and an optional deadline.

A context is shared between the caller (who may cancel it from any thread)
and a running transcode (which polls it). Child contexts created with
with_timeout() are done when their parent is done.
"""

import threading
import time

from .errors import TranscodeCancelledError

CANCELLED = "cancelled"
DEADLINE_EXCEEDED = "deadline exceeded"


class CancelContext:
    """Thread-safe cancellation signal with an optional deadline."""

    def __init__(self, timeout: float | None = None, parent: "CancelContext | None" = None) -> None:
        """
        Args:
            timeout: Seconds from now until the context expires (None = never)
            parent: Context whose cancellation also cancels this one
        """
        self._event = threading.Event()
        self._parent = parent
        self.deadline: float | None = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent.deadline is not None:
            if self.deadline is None or parent.deadline < self.deadline:
                self.deadline = parent.deadline

    def cancel(self) -> None:
        """Signal cancellation. Safe to call more than once and from any thread."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """True once cancel() was called here or on a parent."""
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def reason(self) -> str | None:
        """Why the context is done, or None while it is still live."""
        if self.cancelled:
            return CANCELLED
        if self.expired:
            return DEADLINE_EXCEEDED
        return None

    def done(self) -> bool:
        return self.reason() is not None

    def remaining(self) -> float | None:
        """Seconds left until the deadline (None = no deadline)."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until the context is done or timeout elapses.

        Returns:
            True if the context is done
        """
        end = time.monotonic() + timeout if timeout is not None else None
        while not self.done():
            step = 0.05
            remaining = self.remaining()
            if remaining is not None:
                step = min(step, remaining)
            if end is not None:
                left = end - time.monotonic()
                if left <= 0:
                    return False
                step = min(step, left)
            self._event.wait(step)
        return True

    def raise_if_done(self) -> None:
        """Raise TranscodeCancelledError if the context is done."""
        reason = self.reason()
        if reason is not None:
            raise TranscodeCancelledError(reason)

    def with_timeout(self, timeout: float) -> "CancelContext":
        """Create a child context that also expires after timeout seconds."""
        return CancelContext(timeout=timeout, parent=self)


def background() -> CancelContext:
    """A context with no deadline, done only when cancelled explicitly."""
    return CancelContext()
