"""
Selection data model for the cross-panel sync engine.

All records are frozen dataclasses: a selection is replaced wholesale on every
write, never mutated in place. ``to_dict``/``from_dict`` use the camelCase names
the panels exchange as JSON (``streamId``, ``frameIndex``, ``startBit``...).
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from .constants import DEFAULT_STREAM_ID
from .errors import SelectionValueError


def _coerce_enum(enum_cls, value, what):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(repr(m.value) for m in enum_cls)
        raise SelectionValueError(f"Unknown {what} {value!r} (expected one of {choices})") from None


class StreamId(Enum):
    """The two streams of an A/B compare session"""
    A = "A"
    B = "B"

    @classmethod
    def coerce(cls, value) -> "StreamId":
        return _coerce_enum(cls, value, "stream")


class SelectionPanel(Enum):
    """Panels allowed to write the shared selection"""
    SYNTAX = "syntax"
    HEX = "hex"
    MAIN = "main"
    TIMELINE = "timeline"
    FILMSTRIP = "filmstrip"
    REFERENCE_LISTS = "reference-lists"
    KEYBOARD = "keyboard"
    MINIMAP = "minimap"
    BOOKMARKS = "bookmarks"

    @classmethod
    def coerce(cls, value) -> "SelectionPanel":
        return _coerce_enum(cls, value, "panel")


class TemporalType(Enum):
    """Kinds of temporal selection, highest precedence first"""
    BLOCK = "block"
    POINT = "point"
    RANGE = "range"
    MARKER = "marker"

    @classmethod
    def coerce(cls, value) -> "TemporalType":
        return _coerce_enum(cls, value, "temporal type")

    @property
    def precedence(self) -> int:
        return _TEMPORAL_PRECEDENCE[self]


_TEMPORAL_PRECEDENCE = {
    TemporalType.BLOCK: 4,
    TemporalType.POINT: 3,
    TemporalType.RANGE: 2,
    TemporalType.MARKER: 1,
}


class ResizeHandle(Enum):
    """Overlay handles that drag one edge or corner of a block selection"""
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"

    @classmethod
    def coerce(cls, value) -> "ResizeHandle":
        return _coerce_enum(cls, value, "resize handle")

    @property
    def edges(self) -> Tuple[str, ...]:
        return _RESIZE_EDGES[self]


# Block fields each handle sets; everything else (the opposite edges) stays put
_RESIZE_EDGES = {
    ResizeHandle.TOP: ("y", "h"),
    ResizeHandle.BOTTOM: ("h",),
    ResizeHandle.LEFT: ("x", "w"),
    ResizeHandle.RIGHT: ("w",),
    ResizeHandle.TOP_LEFT: ("x", "y", "w", "h"),
    ResizeHandle.TOP_RIGHT: ("y", "w", "h"),
    ResizeHandle.BOTTOM_LEFT: ("x", "w", "h"),
    ResizeHandle.BOTTOM_RIGHT: ("w", "h"),
}


@dataclass(frozen=True)
class SpatialBlock:
    """Pixel-space rectangle inside a frame"""
    x: int
    y: int
    w: int
    h: int

    def __post_init__(self):
        if self.w < 0 or self.h < 0:
            raise SelectionValueError(f"Block size must be non-negative, got {self.w}x{self.h}")

    @property
    def area(self) -> int:
        return self.w * self.h

    def resized(self, handle, x=None, y=None, w=None, h=None) -> "SpatialBlock":
        """
        Return the block after dragging ``handle``.

        Exactly the fields the handle moves must be given: ``"bottom"`` takes
        ``h``, ``"top"`` takes ``y`` and ``h``, ``"top-left"`` takes all four.
        """
        handle = ResizeHandle.coerce(handle)
        given = {name: value for name, value in (("x", x), ("y", y), ("w", w), ("h", h))
                 if value is not None}
        if set(given) != set(handle.edges):
            raise SelectionValueError(
                f"{handle.value} handle sets {', '.join(handle.edges)}, got {', '.join(sorted(given)) or 'nothing'}")
        return replace(self, **given)

    def to_dict(self):
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}

    @classmethod
    def from_dict(cls, data):
        return cls(int(data["x"]), int(data["y"]), int(data["w"]), int(data["h"]))


@dataclass(frozen=True)
class TemporalSelection:
    """
    Where on the time axis the analyst is looking, independent of any panel.

    ``frame_index`` is the cursor frame for every kind; range selections also
    carry ``range_start``/``range_end`` and block selections carry ``block``.
    """
    type: TemporalType
    frame_index: int
    block: Optional[SpatialBlock] = None
    range_start: Optional[int] = None
    range_end: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "type", TemporalType.coerce(self.type))

    @classmethod
    def point(cls, frame_index: int) -> "TemporalSelection":
        return cls(TemporalType.POINT, frame_index)

    @classmethod
    def block_at(cls, frame_index: int, block: SpatialBlock) -> "TemporalSelection":
        return cls(TemporalType.BLOCK, frame_index, block=block)

    @classmethod
    def range(cls, start: int, end: int) -> "TemporalSelection":
        return cls(TemporalType.RANGE, start, range_start=start, range_end=end)

    @classmethod
    def marker(cls, frame_index: int) -> "TemporalSelection":
        return cls(TemporalType.MARKER, frame_index)

    @property
    def precedence(self) -> int:
        return self.type.precedence

    @property
    def spatial_block(self) -> Optional[SpatialBlock]:
        if self.type is TemporalType.BLOCK:
            return self.block
        return None

    @property
    def is_range(self) -> bool:
        return self.type is TemporalType.RANGE

    @property
    def range_bounds(self) -> Optional[Tuple[int, int]]:
        if not self.is_range or self.range_start is None or self.range_end is None:
            return None
        return self.range_start, self.range_end

    def resized_block(self, handle, x=None, y=None, w=None, h=None) -> "TemporalSelection":
        """Same selection with its block dragged by ``handle``; non-block kinds come back unchanged."""
        if self.type is not TemporalType.BLOCK or self.block is None:
            return self
        return replace(self, block=self.block.resized(handle, x=x, y=y, w=w, h=h))

    def to_dict(self):
        data = {"type": self.type.value, "frameIndex": self.frame_index}
        if self.block is not None:
            data["block"] = self.block.to_dict()
        if self.range_start is not None:
            data["rangeStart"] = self.range_start
        if self.range_end is not None:
            data["rangeEnd"] = self.range_end
        return data

    @classmethod
    def from_dict(cls, data):
        block = data.get("block")
        return cls(
            type=data["type"],
            frame_index=int(data["frameIndex"]),
            block=SpatialBlock.from_dict(block) if block is not None else None,
            range_start=data.get("rangeStart"),
            range_end=data.get("rangeEnd"),
        )


@dataclass(frozen=True)
class DerivedCursor:
    """Playhead position computed from the temporal selection"""
    frame_index: int
    spatial_pos: Optional[Tuple[int, int]] = None

    @classmethod
    def from_temporal(cls, temporal: TemporalSelection) -> "DerivedCursor":
        block = temporal.spatial_block
        return cls(temporal.frame_index, (block.x, block.y) if block else None)


@dataclass(frozen=True)
class FrameKey:
    """One decoded frame in one stream"""
    stream: StreamId
    frame_index: int
    pts: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "stream", StreamId.coerce(self.stream))

    def to_dict(self):
        data = {"stream": self.stream.value, "frameIndex": self.frame_index}
        if self.pts is not None:
            data["pts"] = self.pts
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(data["stream"], int(data["frameIndex"]), data.get("pts"))


@dataclass(frozen=True)
class BitRange:
    """Half-open ``[start_bit, end_bit)`` span of the bitstream"""
    start_bit: int
    end_bit: int

    def __post_init__(self):
        if self.start_bit < 0:
            raise SelectionValueError(f"start_bit must be non-negative, got {self.start_bit}")
        if self.start_bit > self.end_bit:
            raise SelectionValueError(
                f"start_bit ({self.start_bit}) must not exceed end_bit ({self.end_bit})")

    @classmethod
    def from_unit(cls, unit: "UnitKey") -> "BitRange":
        return cls(unit.offset * 8, unit.end_offset * 8)

    @property
    def size_bits(self) -> int:
        return self.end_bit - self.start_bit

    @property
    def byte_offset(self) -> int:
        return self.start_bit // 8

    def contains(self, bit_offset: int) -> bool:
        return self.start_bit <= bit_offset < self.end_bit

    def contains_range(self, other: "BitRange") -> bool:
        return self.start_bit <= other.start_bit and other.end_bit <= self.end_bit

    def to_dict(self):
        return {"startBit": self.start_bit, "endBit": self.end_bit}

    @classmethod
    def from_dict(cls, data):
        return cls(int(data["startBit"]), int(data["endBit"]))


@dataclass(frozen=True)
class UnitKey:
    """One bitstream unit (NAL, OBU...) addressed by its byte extent"""
    stream: StreamId
    unit_type: str
    offset: int
    size: int

    def __post_init__(self):
        object.__setattr__(self, "stream", StreamId.coerce(self.stream))
        if self.offset < 0:
            raise SelectionValueError(f"Unit offset must be non-negative, got {self.offset}")
        if self.size <= 0:
            raise SelectionValueError(f"Unit size must be positive, got {self.size}")

    @property
    def end_offset(self) -> int:
        return self.offset + self.size

    @property
    def bit_range(self) -> BitRange:
        return BitRange.from_unit(self)

    def to_dict(self):
        return {"stream": self.stream.value, "unitType": self.unit_type,
                "offset": self.offset, "size": self.size}

    @classmethod
    def from_dict(cls, data):
        return cls(data["stream"], str(data["unitType"]), int(data["offset"]), int(data["size"]))


@dataclass(frozen=True)
class SyntaxNodeId:
    """
    A node of the parsed syntax tree.

    ``path`` runs from the root to the node. ``offset`` is in bits, relative to
    the containing unit.
    """
    path: Tuple[str, ...] = ()
    field_type: Optional[str] = None
    offset: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.path, str):
            raise SelectionValueError(
                f"Syntax path must be a sequence of names, got the string {self.path!r}")
        path = tuple(self.path)
        if not all(isinstance(name, str) for name in path):
            raise SelectionValueError(f"Syntax path entries must be strings, got {path!r}")
        object.__setattr__(self, "path", path)
        if self.offset is not None and self.offset < 0:
            raise SelectionValueError(f"Syntax node offset must be non-negative, got {self.offset}")

    def to_dict(self):
        data = {"path": list(self.path)}
        if self.field_type is not None:
            data["fieldType"] = self.field_type
        if self.offset is not None:
            data["offset"] = self.offset
        return data

    @classmethod
    def from_dict(cls, data):
        offset = data.get("offset")
        return cls(data.get("path", ()), data.get("fieldType"),
                   int(offset) if offset is not None else None)


@dataclass(frozen=True)
class SelectionSource:
    """Which panel wrote the selection last, and when (ms)"""
    panel: SelectionPanel
    timestamp: int

    def __post_init__(self):
        object.__setattr__(self, "panel", SelectionPanel.coerce(self.panel))

    def to_dict(self):
        return {"panel": self.panel.value, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data):
        return cls(data["panel"], int(data["timestamp"]))


@dataclass(frozen=True)
class SelectionState:
    """
    The single authoritative selection of a session.

    Every facet may be ``None``. ``source`` is stamped by each write; it is
    only ``None`` on the blank record a first write starts from.
    """
    stream_id: StreamId = StreamId(DEFAULT_STREAM_ID)
    temporal: Optional[TemporalSelection] = None
    frame: Optional[FrameKey] = None
    unit: Optional[UnitKey] = None
    syntax_node: Optional[SyntaxNodeId] = None
    bit_range: Optional[BitRange] = None
    source: Optional[SelectionSource] = None

    def __post_init__(self):
        object.__setattr__(self, "stream_id", StreamId.coerce(self.stream_id))

    @property
    def cursor(self) -> Optional[DerivedCursor]:
        if self.temporal is None:
            return None
        return DerivedCursor.from_temporal(self.temporal)

    @property
    def current_frame(self) -> Optional[int]:
        cursor = self.cursor
        return cursor.frame_index if cursor else None

    def to_dict(self):
        return {
            "streamId": self.stream_id.value,
            "temporal": self.temporal.to_dict() if self.temporal else None,
            "frame": self.frame.to_dict() if self.frame else None,
            "unit": self.unit.to_dict() if self.unit else None,
            "syntaxNode": self.syntax_node.to_dict() if self.syntax_node else None,
            "bitRange": self.bit_range.to_dict() if self.bit_range else None,
            "source": self.source.to_dict() if self.source else None,
        }

    @classmethod
    def from_dict(cls, data):
        def parse(key, parser):
            value = data.get(key)
            return parser(value) if value is not None else None

        return cls(
            stream_id=data.get("streamId", DEFAULT_STREAM_ID),
            temporal=parse("temporal", TemporalSelection.from_dict),
            frame=parse("frame", FrameKey.from_dict),
            unit=parse("unit", UnitKey.from_dict),
            syntax_node=parse("syntaxNode", SyntaxNodeId.from_dict),
            bit_range=parse("bitRange", BitRange.from_dict),
            source=parse("source", SelectionSource.from_dict),
        )
