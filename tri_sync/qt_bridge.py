"""
PySide6 adapter for the selection session.
Lets Qt panels consume selection changes through ordinary signal/slot wiring.
"""

import logging

from PySide6.QtCore import QObject, Signal

logger = logging.getLogger(__name__)


class QtSelectionBridge(QObject):
    """Re-emits every committed selection change of a session as Qt signals"""

    selection_changed = Signal(object)  # SelectionChange
    source_panel_changed = Signal(str)  # panel name of the last writer

    def __init__(self, session, parent=None):
        super().__init__(parent)
        self.session = session
        self._last_panel = None
        self._subscription = session.subscribe(self._on_change)
        # The slot must not reference self: it runs after the C++ object is gone
        subscription = self._subscription
        self.destroyed.connect(lambda *_: subscription.unsubscribe())

    @property
    def attached(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def _on_change(self, change):
        self.selection_changed.emit(change)
        panel = change.source.panel.value if change.source else None
        if panel is not None and panel != self._last_panel:
            self._last_panel = panel
            self.source_panel_changed.emit(panel)

    def detach(self):
        """Stop forwarding; safe to call more than once."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
            logger.debug("Qt selection bridge detached")
