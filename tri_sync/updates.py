"""
Selection updates and the merge step.

Each setter of the public API builds one update variant. An update names the
facets it replaces; ``merge`` overrides exactly those fields of the previous
selection (shallow: a nested record such as ``temporal`` is replaced whole,
never patched) and stamps fresh provenance.
"""

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from .selection_model import (
    BitRange,
    FrameKey,
    SelectionPanel,
    SelectionSource,
    SelectionState,
    SyntaxNodeId,
    TemporalSelection,
    UnitKey,
)


class SelectionUpdate(ABC):
    """Base class for the update variants accepted by ``merge``"""

    @abstractmethod
    def changes(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class TemporalUpdate(SelectionUpdate):
    temporal: Optional[TemporalSelection]

    def changes(self):
        return {"temporal": self.temporal}


@dataclass(frozen=True)
class FrameUpdate(SelectionUpdate):
    """Selecting a frame also moves the temporal cursor and the active stream."""
    frame: FrameKey

    def changes(self):
        return {
            "frame": self.frame,
            "stream_id": self.frame.stream,
            "temporal": TemporalSelection.point(self.frame.frame_index),
        }


@dataclass(frozen=True)
class UnitUpdate(SelectionUpdate):
    unit: UnitKey

    def changes(self):
        return {"unit": self.unit, "stream_id": self.unit.stream}


@dataclass(frozen=True)
class SyntaxUpdate(SelectionUpdate):
    syntax_node: Optional[SyntaxNodeId]

    def changes(self):
        return {"syntax_node": self.syntax_node}


@dataclass(frozen=True)
class BitRangeUpdate(SelectionUpdate):
    bit_range: Optional[BitRange]

    def changes(self):
        return {"bit_range": self.bit_range}


_STATE_FIELDS = frozenset(f.name for f in dataclasses.fields(SelectionState)) - {"source"}


def merge(previous: Optional[SelectionState],
          update: Union[SelectionUpdate, Mapping[str, Any]],
          source_panel,
          timestamp: int) -> SelectionState:
    """
    Combine ``previous`` (or a blank selection) with ``update``.

    Args:
        previous (SelectionState): Current selection, or None before the first write.
        update: An update variant, or a mapping of SelectionState field names.
        source_panel (SelectionPanel | str): Panel performing the write.
        timestamp (int): Write time in milliseconds.

    Returns:
        SelectionState: New record; ``previous`` is left untouched.
    """
    base = previous if previous is not None else SelectionState()
    if isinstance(update, SelectionUpdate):
        changes = update.changes()
    else:
        changes = dict(update)
        unknown = set(changes) - _STATE_FIELDS
        if unknown:
            raise TypeError(f"Unknown selection fields: {', '.join(sorted(unknown))}")
    source = SelectionSource(SelectionPanel.coerce(source_panel), timestamp)
    return dataclasses.replace(base, **changes, source=source)
