"""
Subscriber registry that fans selection changes out to panels.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .selection_model import SelectionSource, SelectionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionChange:
    """Payload delivered to subscribers after every commit"""
    selection: SelectionState
    source: Optional[SelectionSource]


SelectionCallback = Callable[[SelectionChange], None]


class Subscription:
    """
    Handle returned by ``SelectionNotifier.subscribe``.

    Calling the handle (or ``unsubscribe()``) removes exactly this callback.
    Repeated calls are no-ops.
    """

    def __init__(self, notifier, sub_id: int):
        self._notifier = notifier
        self.id = sub_id

    @property
    def active(self) -> bool:
        return self._notifier.is_subscribed(self.id)

    def unsubscribe(self):
        self._notifier.unsubscribe(self.id)

    __call__ = unsubscribe

    def __repr__(self):
        return f"Subscription(id={self.id}, active={self.active})"


class SelectionNotifier:
    """Calls every registered callback synchronously on ``notify``."""

    def __init__(self, isolate_errors=True):
        self.isolate_errors = isolate_errors
        self._callbacks: Dict[int, SelectionCallback] = {}
        self._ids = itertools.count(1)

    def __len__(self):
        return len(self._callbacks)

    def subscribe(self, callback: SelectionCallback) -> Subscription:
        if not callable(callback):
            raise TypeError(f"Subscriber must be callable, got {type(callback).__name__}")
        sub_id = next(self._ids)
        self._callbacks[sub_id] = callback
        logger.debug("Subscriber %d registered (%d total)", sub_id, len(self._callbacks))
        return Subscription(self, sub_id)

    def unsubscribe(self, sub_id: int) -> bool:
        removed = self._callbacks.pop(sub_id, None) is not None
        if removed:
            logger.debug("Subscriber %d removed", sub_id)
        return removed

    def is_subscribed(self, sub_id: int) -> bool:
        return sub_id in self._callbacks

    def clear(self):
        self._callbacks.clear()

    def notify(self, change: SelectionChange):
        # Snapshot: callbacks may subscribe or unsubscribe while being notified
        for sub_id, callback in list(self._callbacks.items()):
            if sub_id not in self._callbacks:
                continue
            if not self.isolate_errors:
                callback(change)
                continue
            try:
                callback(change)
            except Exception as e:
                logger.error(f"Selection subscriber {sub_id} failed: {e}", exc_info=True)
