"""
Tri-sync derivation rules.

A selection written by one panel often implies a facet another panel needs:
a temporal cursor implies a frame, a unit implies a bit range, a syntax field
with an offset implies a bit range. ``apply_rules`` derives at most ONE such
facet per call. Rules are tried in order and the first match returns at once;
this is a single pass, not a fixed-point iteration, so a rule whose input was
produced by an earlier rule in the same call never fires.
"""

import dataclasses
import logging
from typing import Callable, List, NamedTuple, Optional

from .constants import (
    DEFAULT_FIELD_BITS,
    FIXED_WIDTH_FIELD_BITS,
    VARIABLE_LENGTH_FIELD_BITS,
    VARIABLE_LENGTH_FIELD_TYPES,
)
from .selection_model import BitRange, FrameKey, SelectionState

logger = logging.getLogger(__name__)


def estimate_bit_size(field_type: Optional[str]) -> int:
    """
    Estimate how many bits a syntax field of ``field_type`` occupies.

    Args:
        field_type (str): Descriptor tag such as ``"u4"`` or ``"ue(v)"``.

    Returns:
        int: Fixed-width tags map to their width. Variable-length codes map to
        0, so the derived range is empty (their real width is only known to
        the parser). Anything else, including ``None``, maps to 32.
    """
    if field_type in FIXED_WIDTH_FIELD_BITS:
        return FIXED_WIDTH_FIELD_BITS[field_type]
    if field_type in VARIABLE_LENGTH_FIELD_TYPES:
        return VARIABLE_LENGTH_FIELD_BITS
    return DEFAULT_FIELD_BITS


class Rule(NamedTuple):
    name: str
    applies: Callable[[SelectionState], bool]
    derive: Callable[[SelectionState], SelectionState]


def _temporal_needs_frame(state):
    if state.temporal is None:
        return False
    return state.frame is None or state.frame.frame_index != state.temporal.frame_index


def _frame_from_temporal(state):
    frame = FrameKey(state.stream_id, state.temporal.frame_index)
    return dataclasses.replace(state, frame=frame)


def _unit_needs_bit_range(state):
    return state.unit is not None and state.bit_range is None


def _bit_range_from_unit(state):
    return dataclasses.replace(state, bit_range=BitRange.from_unit(state.unit))


def _syntax_needs_bit_range(state):
    node = state.syntax_node
    return node is not None and node.offset is not None and state.bit_range is None


def _bit_range_from_syntax(state):
    node = state.syntax_node
    end = node.offset + estimate_bit_size(node.field_type)
    return dataclasses.replace(state, bit_range=BitRange(node.offset, end))


TRI_SYNC_RULES: List[Rule] = [
    Rule("temporal->frame", _temporal_needs_frame, _frame_from_temporal),
    Rule("unit->bit_range", _unit_needs_bit_range, _bit_range_from_unit),
    Rule("syntax->bit_range", _syntax_needs_bit_range, _bit_range_from_syntax),
]


def apply_rules(state: SelectionState, rules=TRI_SYNC_RULES) -> SelectionState:
    """Derive the first implied facet that is missing; return ``state`` otherwise."""
    for rule in rules:
        if rule.applies(state):
            logger.debug("Tri-sync rule %s fired", rule.name)
            return rule.derive(state)
    return state
