from collections import deque

from .constants import DEFAULT_HISTORY_SIZE


class SelectionHistory:
    """
    Keeps the most recent selection changes of a session, oldest first.

    Useful for debugging panel feedback loops: each entry carries the panel
    that wrote it and when.
    """

    def __init__(self, max_entries=DEFAULT_HISTORY_SIZE):
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._entries = deque(maxlen=max_entries)

    def __call__(self, change):
        self._entries.append(change)

    def __len__(self):
        return len(self._entries)

    def attach(self, session):
        """Subscribe to ``session``; returns the subscription handle."""
        return session.subscribe(self)

    @property
    def entries(self):
        return list(self._entries)

    def last(self, count):
        if count <= 0:
            return []
        return list(self._entries)[-count:]

    def panels(self):
        """Writer panel of every recorded change, oldest first."""
        return [c.source.panel for c in self._entries if c.source is not None]

    def clear(self):
        self._entries.clear()
