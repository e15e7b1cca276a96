"""
Cancellation Tokens

Cooperative cancellation shared by everything working on one variant analysis.
"""

import threading
from typing import Optional

from mrva.domain.errors import UserCancellationError


class CancellationToken:
    """
    A cancellation flag checked at well-defined points.

    Cancelling never interrupts work in flight; it only makes the next
    check fail. Backed by threading.Event so waits wake up immediately.
    """

    def __init__(self):
        self._event = threading.Event()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Idempotent."""
        self._event.set()

    def raise_if_cancelled(self, message: str = "Operation cancelled by user") -> None:
        """
        Raise if cancellation was requested.

        Raises:
            UserCancellationError: If the token is cancelled
        """
        if self._event.is_set():
            raise UserCancellationError(message)

    def wait(self, timeout: Optional[float]) -> bool:
        """
        Sleep up to timeout seconds, waking early on cancellation.

        Returns:
            True if cancelled, False if the timeout elapsed
        """
        return self._event.wait(timeout)

    @classmethod
    def cancelled(cls) -> "CancellationToken":
        """A token that is already cancelled."""
        token = cls()
        token.cancel()
        return token
