"""
Cancellation tokens for language-model calls.

A ``CancellationTokenSource`` owns one ``CancellationToken``. Callers hand the
token to the model, cancel through the source, and always dispose the source
when the call ends so registered listeners are released.
"""

from typing import Callable, List, Optional

from ..utils.logging import get_logger

logger = get_logger(__name__)


class CancellationToken:
    """Read-only view of a cancellation request."""

    def __init__(self):
        self._cancelled = False
        self._listeners: List[Callable[[], None]] = []

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def on_cancelled(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it.

        A listener registered after cancellation runs immediately.
        """
        if self._cancelled:
            listener()
            return lambda: None

        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _fire(self) -> None:
        self._cancelled = True
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener()
            except Exception as e:
                logger.warning(f"Cancellation listener failed: {e}")


class CancellationTokenSource:

    def __init__(self):
        self._token: Optional[CancellationToken] = CancellationToken()
        self._disposed = False

    @property
    def token(self) -> CancellationToken:
        if self._token is None:
            raise RuntimeError("CancellationTokenSource has been disposed")
        return self._token

    @property
    def disposed(self) -> bool:
        return self._disposed

    def cancel(self) -> None:
        if self._token is not None and not self._token.is_cancellation_requested:
            self._token._fire()

    def dispose(self) -> None:
        """Release listeners. Safe to call more than once."""
        if self._token is not None:
            self._token._listeners.clear()
        self._disposed = True

    def __enter__(self) -> "CancellationTokenSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()
