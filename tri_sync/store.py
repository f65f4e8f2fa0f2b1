"""
Selection store: holds the current selection and commits writes.
"""

import dataclasses
import logging
import threading
from typing import Callable, Optional

from .constants import now_ms
from .notifier import SelectionChange, SelectionNotifier
from .rules import apply_rules
from .selection_model import SelectionPanel, SelectionSource, SelectionState
from .updates import merge

logger = logging.getLogger(__name__)


class SelectionStore:
    """
    Single current selection (``None`` until the first write).

    ``commit`` is merge -> rules -> store -> notify, all before returning.
    Commits are serialized by a re-entrant lock, so a subscriber may commit
    again from inside its callback on the same thread.
    """

    def __init__(self, notifier: Optional[SelectionNotifier] = None,
                 clock: Callable[[], int] = now_ms):
        self.notifier = notifier if notifier is not None else SelectionNotifier()
        self._clock = clock
        self._lock = threading.RLock()
        self._current: Optional[SelectionState] = None

    @property
    def current(self) -> Optional[SelectionState]:
        return self._current

    def commit(self, update, source_panel) -> SelectionState:
        with self._lock:
            candidate = merge(self._current, update, source_panel, self._clock())
            committed = apply_rules(candidate)
            self._current = committed
            logger.debug("Selection committed by %s: %s", committed.source.panel.value,
                         _describe(committed))
            self.notifier.notify(SelectionChange(committed, committed.source))
            return committed

    def clear_temporal(self) -> Optional[SelectionState]:
        """
        Drop the temporal facet only. Provenance is always stamped as the
        syntax panel. Subscribers are not notified.
        """
        with self._lock:
            if self._current is None:
                return None
            source = SelectionSource(SelectionPanel.SYNTAX, self._clock())
            self._current = dataclasses.replace(self._current, temporal=None, source=source)
            return self._current

    def clear_all(self):
        """Forget the selection entirely. Subscribers are not notified."""
        with self._lock:
            self._current = None


def _describe(state):
    facets = ("temporal", "frame", "unit", "syntax_node", "bit_range")
    present = [name for name in facets if getattr(state, name) is not None]
    return f"stream={state.stream_id.value} facets={','.join(present) or '-'}"
