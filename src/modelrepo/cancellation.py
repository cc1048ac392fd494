"""Cancellation tokens for filesystem-bound operations.

Store operations check the token before each filesystem call, so a slow
directory walk can be abandoned between entries.
"""

from __future__ import annotations

import threading
import time

from modelrepo.registry.errors import OperationCancelledError


class CancelToken:
    """Thread-safe cancellation flag with an optional deadline.

    Usage:
        token = CancelToken(deadline_s=5.0)
        store.list(tolerant=True, cancel=token)
        # from another thread: token.cancel()
    """

    def __init__(self, deadline_s: float | None = None) -> None:
        """
        Initialize token.

        Args:
            deadline_s: Seconds from now after which the token counts as
                cancelled. None means no deadline.
        """
        if deadline_s is not None and deadline_s < 0:
            raise ValueError(f"deadline_s must be >= 0, got {deadline_s}")
        self._event = threading.Event()
        self._deadline = None if deadline_s is None else time.monotonic() + deadline_s

    def cancel(self) -> None:
        """Cancel all operations observing this token."""
        self._event.set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    def check(self) -> None:
        """Raise if cancelled or past the deadline.

        Raises:
            OperationCancelledError: If the token fired.
        """
        if self._event.is_set():
            raise OperationCancelledError("operation cancelled")
        if self.expired:
            raise OperationCancelledError("operation deadline exceeded")
