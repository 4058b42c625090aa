"""publish/subscribe primitive used to push state changes to the UI layer."""
import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Observable(Generic[T]):
    """a list of callbacks notified in subscription order."""

    def __init__(self):
        self._observers: List[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        register a callback.

        returns:
            a function that removes the callback again
        """
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def publish(self, value: T) -> None:
        # copy so observers may unsubscribe while being notified
        for callback in list(self._observers):
            try:
                callback(value)
            except Exception:
                logger.exception(f"observer {callback!r} failed")

    def clear(self) -> None:
        self._observers.clear()

    def __len__(self) -> int:
        return len(self._observers)
