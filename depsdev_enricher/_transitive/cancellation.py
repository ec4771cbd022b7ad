"""Cancellation token threaded through an enrichment pass."""

import threading
import time
from typing import Optional

from ..exceptions import OperationCancelledError


class CancellationToken:
    """
    Cooperative cancellation signal with an optional deadline.

    The token fires either when cancel() is called or when the deadline
    passes. Network calls bound their timeout by remaining().
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, None if there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            OperationCancelledError: If the token has fired
        """
        if self.cancelled:
            raise OperationCancelledError("operation cancelled")
