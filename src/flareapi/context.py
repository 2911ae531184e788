r"""Cooperative cancellation for blocking API calls.

This module provides the ``Context`` object threaded through every
request. A context can be cancelled explicitly or by a deadline, and
all blocking points of the request executor (rate limiter wait, backoff
sleep, transport round trip) consult it.

Example:
    ```pycon
    >>> from flareapi.context import Context
    >>> ctx = Context.with_timeout(Context(), 30.0)
    >>> ctx.done()
    False
    >>> ctx.cancel()
    >>> ctx.done()
    True
    >>> ctx.err()
    ContextCancelledError('context canceled')

    ```
"""

from __future__ import annotations

__all__ = [
    "Context",
    "ContextCancelledError",
    "ContextError",
    "DeadlineExceededError",
]

import threading
import time


class ContextError(Exception):
    """Base class for the reasons a context is done."""


class ContextCancelledError(ContextError):
    """Raised when a context was cancelled by its owner."""

    def __init__(self, message: str = "context canceled") -> None:
        super().__init__(message)


class DeadlineExceededError(ContextError):
    """Raised when a context deadline has passed."""

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)


class Context:
    """Cancellation scope shared by one logical operation.

    A context is done once ``cancel`` is called on it or on one of its
    ancestors, or once its deadline has passed. Contexts are safe to share
    between threads.

    Args:
        parent: Optional parent context. Cancelling the parent cancels
            this context as well.
        deadline: Optional absolute deadline as a ``time.monotonic()``
            timestamp. A child never outlives the deadline of its parent.
    """

    def __init__(self, parent: Context | None = None, deadline: float | None = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._err: ContextError | None = None
        self._children: list[Context] = []
        self._parent = parent

        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline

        if parent is not None:
            parent._adopt(self)

    @classmethod
    def with_cancel(cls, parent: Context) -> Context:
        """Create a cancellable child of ``parent``."""
        return cls(parent=parent)

    @classmethod
    def with_timeout(cls, parent: Context, seconds: float) -> Context:
        """Create a child of ``parent`` that expires after ``seconds``.

        Args:
            parent: The parent context.
            seconds: Time budget in seconds, measured from now.

        Returns:
            The new child context.
        """
        return cls(parent=parent, deadline=time.monotonic() + seconds)

    def _adopt(self, child: Context) -> None:
        now = time.monotonic()
        with self._lock:
            err = self._err
            if err is None:
                self._children.append(child)
            expired = [
                c for c in self._children if c.deadline is not None and c.deadline <= now
            ]
        if err is not None:
            child.cancel(err)
        # Expired children nobody polls anymore are released here.
        for c in expired:
            c._check_deadline()

    def _detach(self, child: Context) -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def cancel(self, cause: BaseException | None = None) -> None:
        """Mark the context and all of its descendants as done.

        Cancelling an already done context has no effect.

        Args:
            cause: Optional reason. Defaults to ``ContextCancelledError``.
        """
        if cause is None:
            cause = ContextCancelledError()
        elif not isinstance(cause, ContextError):
            error = ContextCancelledError(str(cause))
            error.__cause__ = cause
            cause = error

        with self._lock:
            if self._err is not None:
                return
            self._err = cause
            children, self._children = self._children, []
        self._event.set()
        parent, self._parent = self._parent, None
        if parent is not None:
            parent._detach(self)
        for child in children:
            child.cancel(cause)

    def _check_deadline(self) -> None:
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self.cancel(DeadlineExceededError())

    def remaining(self) -> float | None:
        """Return the seconds left before the deadline, or ``None``."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def done(self) -> bool:
        """Return whether the context is cancelled or expired."""
        self._check_deadline()
        return self._event.is_set()

    def err(self) -> ContextError | None:
        """Return the reason the context is done, or ``None``."""
        self._check_deadline()
        return self._err

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the context is done or ``timeout`` elapses.

        Args:
            timeout: Maximum number of seconds to block. ``None`` blocks
                until the context is done.

        Returns:
            ``True`` if the context is done, ``False`` on timeout.
        """
        remaining = self.remaining()
        if remaining is not None and (timeout is None or remaining <= timeout):
            if not self._event.wait(remaining):
                self._check_deadline()
            return self._event.is_set()
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        state = "done" if self._event.is_set() else "active"
        return f"{type(self).__name__}(state={state}, deadline={self.deadline})"
