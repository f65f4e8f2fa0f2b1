"""
Selection session: the public API panels use to read and write the shared
selection.

One session per analysis window. Panels receive the session explicitly and
call the intent-specific setters with their own panel name::

    with SelectionSession() as session:
        sub = session.subscribe(hex_view.on_selection_changed)
        session.set_unit_selection(unit, "hex")
        ...
        sub()  # unsubscribe

Closing the session releases every subscription; any later access raises
``SelectionSessionError``.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Optional

from .constants import now_ms
from .errors import SelectionSessionError
from .notifier import SelectionNotifier, Subscription
from .selection_model import (
    BitRange,
    FrameKey,
    SelectionState,
    SpatialBlock,
    SyntaxNodeId,
    TemporalSelection,
    UnitKey,
)
from .store import SelectionStore
from .updates import BitRangeUpdate, FrameUpdate, SyntaxUpdate, TemporalUpdate, UnitUpdate

logger = logging.getLogger(__name__)


def _expect(value, cls, what, allow_none=False):
    if value is None and allow_none:
        return
    if not isinstance(value, cls):
        raise TypeError(f"{what} must be a {cls.__name__}, got {type(value).__name__}")


class SelectionSession:
    def __init__(self, clock: Callable[[], int] = now_ms, isolate_subscriber_errors=True):
        self._notifier = SelectionNotifier(isolate_errors=isolate_subscriber_errors)
        self._store = SelectionStore(self._notifier, clock)
        self._closed = False
        logger.debug("Selection session opened")

    def __enter__(self):
        self._require_active()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    @property
    def active(self) -> bool:
        return not self._closed

    def _require_active(self):
        if self._closed:
            raise SelectionSessionError()

    @property
    def selection(self) -> Optional[SelectionState]:
        """Current selection, ``None`` if nothing has been selected yet."""
        self._require_active()
        return self._store.current

    # ── Setters ──

    def set_temporal_selection(self, temporal: Optional[TemporalSelection], panel) -> SelectionState:
        self._require_active()
        _expect(temporal, TemporalSelection, "temporal", allow_none=True)
        return self._store.commit(TemporalUpdate(temporal), panel)

    def select_spatial_block(self, frame_index: int, block: SpatialBlock, panel) -> SelectionState:
        """Shortcut for a block temporal selection drawn on ``frame_index``."""
        _expect(block, SpatialBlock, "block")
        return self.set_temporal_selection(TemporalSelection.block_at(frame_index, block), panel)

    def resize_block(self, handle, panel, *, x=None, y=None, w=None, h=None) -> Optional[SelectionState]:
        """
        Drag one handle of the selected block.

        Without a block selection this is a no-op and returns the current
        selection. The derived cursor follows the new block on commit.
        """
        self._require_active()
        current = self._store.current
        if current is None or current.temporal is None or current.temporal.spatial_block is None:
            return current
        temporal = current.temporal.resized_block(handle, x=x, y=y, w=w, h=h)
        return self._store.commit(TemporalUpdate(temporal), panel)

    def set_frame_selection(self, frame: Optional[FrameKey], panel) -> Optional[SelectionState]:
        """Select a frame; also points the temporal cursor at it and switches stream."""
        self._require_active()
        if frame is None:
            return self._store.current
        _expect(frame, FrameKey, "frame")
        return self._store.commit(FrameUpdate(frame), panel)

    def set_unit_selection(self, unit: Optional[UnitKey], panel) -> Optional[SelectionState]:
        self._require_active()
        if unit is None:
            return self._store.current
        _expect(unit, UnitKey, "unit")
        return self._store.commit(UnitUpdate(unit), panel)

    def set_syntax_selection(self, node: Optional[SyntaxNodeId], panel) -> SelectionState:
        self._require_active()
        _expect(node, SyntaxNodeId, "syntax node", allow_none=True)
        return self._store.commit(SyntaxUpdate(node), panel)

    def set_bit_range_selection(self, bit_range: Optional[BitRange], panel) -> SelectionState:
        self._require_active()
        _expect(bit_range, BitRange, "bit range", allow_none=True)
        return self._store.commit(BitRangeUpdate(bit_range), panel)

    def clear_temporal(self) -> Optional[SelectionState]:
        # Provenance is recorded as the syntax panel whoever calls this
        self._require_active()
        return self._store.clear_temporal()

    def clear_all(self):
        self._require_active()
        self._store.clear_all()

    # ── Subscriptions ──

    def subscribe(self, callback) -> Subscription:
        self._require_active()
        return self._notifier.subscribe(callback)

    @contextmanager
    def subscribed(self, callback):
        """Keep ``callback`` subscribed for the duration of a ``with`` block."""
        subscription = self.subscribe(callback)
        try:
            yield subscription
        finally:
            subscription.unsubscribe()

    @property
    def subscriber_count(self) -> int:
        return len(self._notifier)

    def close(self):
        if self._closed:
            return
        count = len(self._notifier)
        self._notifier.clear()
        self._store.clear_all()
        self._closed = True
        logger.debug("Selection session closed, released %d subscriptions", count)


def require_session(session: Optional[SelectionSession]) -> SelectionSession:
    """Return ``session`` if it can be used, raise ``SelectionSessionError`` otherwise."""
    if session is None or not session.active:
        raise SelectionSessionError()
    return session
