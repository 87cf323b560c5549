"""Cancellation and deadline context passed to storage operations.

A Context is a small token the caller hands to every storage call. Backends
check it before touching the filesystem or network and between steps of
longer loops (stream copies, listing pages, multi-object deletes). A call
already inside a syscall or an HTTP request is not interrupted; cancellation
takes effect at the next check.

Example:
    >>> ctx = Context.background().with_timeout(30)
    >>> storage.put(ctx, "reports/2024.csv", data)
"""

import threading
import time
from typing import Optional

from .exceptions import OperationCancelledError


class Context:
    """Cooperative cancellation token with an optional deadline.

    Deadlines are measured against time.monotonic(). Cancelling a context
    also cancels every context derived from it.
    """

    def __init__(
        self, deadline: Optional[float] = None, parent: Optional["Context"] = None
    ):
        self._deadline = deadline
        self._parent = parent
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> "Context":
        """Return a context that is never cancelled and has no deadline."""
        return cls()

    def with_cancel(self) -> "Context":
        """Derive a child context the caller can cancel independently."""
        return Context(parent=self)

    def with_timeout(self, seconds: float) -> "Context":
        """Derive a child context that expires after ``seconds``."""
        return Context(deadline=time.monotonic() + seconds, parent=self)

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._cancelled.set()

    @property
    def deadline(self) -> Optional[float]:
        """Earliest deadline along the parent chain, if any."""
        deadlines = []
        ctx: Optional[Context] = self
        while ctx is not None:
            if ctx._deadline is not None:
                deadlines.append(ctx._deadline)
            ctx = ctx._parent
        return min(deadlines) if deadlines else None

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        deadline = self.deadline
        if deadline is None:
            return None
        return max(0.0, deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        ctx: Optional[Context] = self
        while ctx is not None:
            if ctx._cancelled.is_set():
                return True
            ctx = ctx._parent
        return False

    @property
    def expired(self) -> bool:
        deadline = self.deadline
        return deadline is not None and time.monotonic() >= deadline

    def done(self) -> bool:
        """Return True once the context is cancelled or past its deadline."""
        return self.cancelled or self.expired

    def check(self, operation: str, path: str = "") -> None:
        """Raise OperationCancelledError if the context is done.

        Args:
            operation: Name of the storage operation being performed
            path: Object path involved, for the error message

        Raises:
            OperationCancelledError: If cancelled or the deadline has passed
        """
        if not self.done():
            return

        reason = "context cancelled" if self.cancelled else "deadline exceeded"
        target = f" {path!r}" if path else ""
        raise OperationCancelledError(f"{operation}{target}: {reason}")


def ensure_context(ctx: Optional[Context]) -> Context:
    """Return ``ctx``, or a background context when None was passed."""
    return ctx if ctx is not None else Context.background()
