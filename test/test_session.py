"""
Test the public selection API: setters, tri-sync propagation, subscriptions
"""
import itertools
import pytest
from tri_sync.selection_model import (
    BitRange, FrameKey, SelectionPanel, SpatialBlock, StreamId, SyntaxNodeId,
    TemporalSelection, UnitKey,
)
from tri_sync.session import SelectionSession


@pytest.fixture
def session():
    ticks = itertools.count(1000)
    with SelectionSession(clock=lambda: next(ticks)) as s:
        yield s


def test_default_selection_is_none(session):
    assert session.selection is None
    assert session.active


def test_default_clock_stamps_positive_timestamp():
    with SelectionSession() as s:
        s.set_temporal_selection(TemporalSelection.block_at(10, SpatialBlock(0, 0, 16, 16)), "main")
        assert s.selection.source.panel is SelectionPanel.MAIN
        assert s.selection.source.timestamp > 0


# ── Temporal ──

def test_set_temporal_selection(session):
    temporal = TemporalSelection.point(5)
    session.set_temporal_selection(temporal, "timeline")
    assert session.selection.temporal == temporal


def test_temporal_range_and_marker(session):
    session.set_temporal_selection(TemporalSelection.range(0, 100), "filmstrip")
    assert session.selection.temporal.range_bounds == (0, 100)
    session.set_temporal_selection(TemporalSelection.marker(50), "bookmarks")
    assert session.selection.temporal.type.value == "marker"


def test_temporal_propagates_to_frame(session):
    session.set_temporal_selection(TemporalSelection.point(42), "timeline")
    assert session.selection.frame == FrameKey("A", 42)


def test_temporal_frame_uses_active_stream(session):
    session.set_frame_selection(FrameKey("B", 20), "main")
    session.set_temporal_selection(TemporalSelection.point(30), "timeline")
    assert session.selection.frame == FrameKey("B", 30)


def test_timeline_scrubbing(session):
    for i in range(10):
        session.set_temporal_selection(TemporalSelection.point(i), "timeline")
        assert session.selection.temporal.frame_index == i
        assert session.selection.frame.frame_index == i


def test_negative_temporal_frame_index(session):
    session.set_temporal_selection(TemporalSelection.point(-1), "timeline")
    assert session.selection.temporal.frame_index == -1


def test_clear_temporal(session):
    """Scenario D: only temporal is dropped and provenance reads 'syntax'."""
    session.set_unit_selection(UnitKey("A", "OBU", 100, 50), "hex")
    session.set_frame_selection(FrameKey("A", 5), "filmstrip")
    before = session.selection

    session.clear_temporal()

    after = session.selection
    assert after.temporal is None
    assert after.frame == before.frame
    assert after.unit == before.unit
    assert after.bit_range == before.bit_range
    assert after.syntax_node == before.syntax_node
    assert after.stream_id == before.stream_id
    assert after.source.panel is SelectionPanel.SYNTAX
    assert after.source.timestamp > before.source.timestamp


def test_clear_temporal_without_selection(session):
    assert session.clear_temporal() is None
    assert session.selection is None


# ── Frame ──

def test_frame_selection_scenario(session):
    """Scenario A."""
    session.set_frame_selection(FrameKey("A", 5), "filmstrip")
    sel = session.selection
    assert sel.frame == FrameKey("A", 5)
    assert sel.temporal == TemporalSelection.point(5)
    assert sel.source.panel is SelectionPanel.FILMSTRIP


@pytest.mark.parametrize("stream,index,pts", [("A", 0, None), ("B", 25, None), ("A", 10, 500), ("B", 999999, 1.5)])
def test_frame_sync_property(session, stream, index, pts):
    """P1: frame, temporal point and stream all follow the selected frame."""
    frame = FrameKey(stream, index, pts)
    session.set_frame_selection(frame, "keyboard")
    sel = session.selection
    assert sel.frame == frame
    assert sel.temporal == TemporalSelection.point(index)
    assert sel.stream_id is frame.stream


def test_frame_none_is_noop(session):
    assert session.set_frame_selection(None, "timeline") is None
    assert session.selection is None
    session.set_frame_selection(FrameKey("A", 3), "timeline")
    before = session.selection
    session.set_frame_selection(None, "minimap")
    assert session.selection is before


def test_stream_switch_keeps_bit_range(session):
    session.set_frame_selection(FrameKey("A", 5), "timeline")
    session.set_bit_range_selection(BitRange(100, 200), "hex")
    session.set_frame_selection(FrameKey("B", 15), "timeline")
    sel = session.selection
    assert sel.stream_id is StreamId.B
    assert sel.frame == FrameKey("B", 15)
    assert sel.bit_range == BitRange(100, 200)


@pytest.mark.parametrize("panel", [p.value for p in SelectionPanel])
def test_every_panel_recorded_as_source(session, panel):
    session.set_frame_selection(FrameKey("A", 5), panel)
    assert session.selection.source.panel.value == panel


def test_rapid_frame_changes(session):
    for i in range(50):
        session.set_frame_selection(FrameKey("A", i), "keyboard")
    assert session.selection.frame.frame_index == 49


# ── Unit / syntax / bit range ──

def test_unit_selection_scenario(session):
    """Scenario B."""
    unit = UnitKey("A", "OBU", 100, 50)
    session.set_unit_selection(unit, "hex")
    assert session.selection.unit == unit
    assert session.selection.bit_range == BitRange(800, 1200)


@pytest.mark.parametrize("offset,size", [(0, 1), (1000, 500), (2000, 256), (123456, 7)])
def test_unit_bit_range_property(session, offset, size):
    """P2."""
    session.set_unit_selection(UnitKey("B", "nal_unit", offset, size), "syntax")
    assert session.selection.bit_range == BitRange(offset * 8, (offset + size) * 8)
    assert session.selection.stream_id is StreamId.B


def test_unit_none_is_noop(session):
    assert session.set_unit_selection(None, "hex") is None
    assert session.selection is None


def test_syntax_does_not_override_bit_range(session):
    """Scenario C / P3: a derived bit range is not replaced by a later syntax node."""
    session.set_unit_selection(UnitKey("A", "OBU", 100, 50), "hex")
    session.set_syntax_selection(SyntaxNodeId(["frame", "header"], offset=900), "syntax")
    sel = session.selection
    assert sel.syntax_node.path == ("frame", "header")
    assert sel.bit_range == BitRange(800, 1200)


def test_syntax_derives_bit_range(session):
    session.set_syntax_selection(SyntaxNodeId(["root", "frame_header"], "u4", 1000), "reference-lists")
    assert session.selection.bit_range == BitRange(1000, 1004)
    assert session.selection.source.panel is SelectionPanel.REFERENCE_LISTS


@pytest.mark.parametrize("field_type,end", [("u1", 101), ("u4", 104), ("u8", 108), ("ue(v)", 100), ("leb128", 100), ("unknown_type", 132)])
def test_syntax_field_widths(session, field_type, end):
    session.set_syntax_selection(SyntaxNodeId(["test"], field_type, 100), "syntax")
    assert session.selection.bit_range == BitRange(100, end)


def test_syntax_without_offset(session):
    node = SyntaxNodeId(["root", "header"])
    session.set_syntax_selection(node, "syntax")
    assert session.selection.syntax_node == node
    assert session.selection.bit_range is None


def test_syntax_none_clears_node(session):
    session.set_syntax_selection(SyntaxNodeId(["a"]), "syntax")
    session.set_syntax_selection(None, "syntax")
    assert session.selection.syntax_node is None


def test_bit_range_selection(session):
    session.set_frame_selection(FrameKey("A", 10), "timeline")
    session.set_bit_range_selection(BitRange(500, 1000), "hex")
    assert session.selection.frame == FrameKey("A", 10)
    assert session.selection.bit_range == BitRange(500, 1000)


def test_zero_width_bit_range(session):
    session.set_bit_range_selection(BitRange(100, 100), "hex")
    assert session.selection.bit_range == BitRange(100, 100)


def test_hex_navigation_keeps_unit(session):
    unit = UnitKey("A", "nal_unit", 1000, 256)
    session.set_unit_selection(unit, "hex")
    assert session.selection.bit_range == BitRange(8000, 10048)
    session.set_bit_range_selection(BitRange(8100, 8200), "hex")
    assert session.selection.bit_range == BitRange(8100, 8200)
    assert session.selection.unit == unit


def test_clearing_bit_range_with_unit_rederives(session):
    """With a unit selected, clearing the bit range lets the unit rule fill it again."""
    session.set_unit_selection(UnitKey("A", "OBU", 10, 2), "hex")
    session.set_bit_range_selection(BitRange(81, 82), "hex")
    session.set_bit_range_selection(None, "hex")
    assert session.selection.bit_range == BitRange(80, 96)


def test_syntax_then_frame_workflow(session):
    session.set_syntax_selection(SyntaxNodeId(["root", "frame_header"], "u8", 500), "syntax")
    assert session.selection.bit_range == BitRange(500, 508)
    session.set_frame_selection(FrameKey("A", 25), "filmstrip")
    assert session.selection.frame == FrameKey("A", 25)
    assert session.selection.temporal == TemporalSelection.point(25)
    assert session.selection.bit_range == BitRange(500, 508)


def test_setters_return_committed_selection(session):
    result = session.set_unit_selection(UnitKey("A", "OBU", 1, 1), "hex")
    assert result is session.selection


def test_setters_check_types(session):
    with pytest.raises(TypeError):
        session.set_frame_selection({"stream": "A", "frameIndex": 1}, "timeline")
    with pytest.raises(TypeError):
        session.set_bit_range_selection((0, 8), "hex")
    with pytest.raises(TypeError):
        session.set_temporal_selection(5, "timeline")
    assert session.selection is None


# ── clear_all ──

def test_clear_all(session):
    """P4."""
    session.set_frame_selection(FrameKey("A", 10), "timeline")
    session.set_bit_range_selection(BitRange(0, 100), "hex")
    assert session.selection is not None
    session.clear_all()
    assert session.selection is None


def test_clear_all_then_write_starts_fresh(session):
    session.set_frame_selection(FrameKey("B", 10), "timeline")
    session.clear_all()
    session.set_bit_range_selection(BitRange(0, 8), "hex")
    assert session.selection.stream_id is StreamId.A
    assert session.selection.frame is None


# ── Subscriptions ──

def test_subscriber_notified(session):
    seen = []
    unsubscribe = session.subscribe(seen.append)
    session.set_frame_selection(FrameKey("A", 10), "timeline")
    assert len(seen) == 1
    assert seen[0].selection.frame == FrameKey("A", 10)
    assert seen[0].selection is session.selection
    unsubscribe()


def test_subscriber_sees_source(session):
    seen = []
    session.subscribe(seen.append)
    session.set_temporal_selection(TemporalSelection.point(15), "main")
    assert seen[0].source.panel is SelectionPanel.MAIN
    assert isinstance(seen[0].source.timestamp, int)


def test_subscriber_sees_derived_facets(session):
    seen = []
    session.subscribe(seen.append)
    session.set_unit_selection(UnitKey("A", "OBU", 100, 50), "hex")
    assert seen[0].selection.bit_range == BitRange(800, 1200)


def test_unsubscribe_before_commit(session):
    """P5."""
    seen = []
    unsubscribe = session.subscribe(seen.append)
    unsubscribe()
    session.set_frame_selection(FrameKey("A", 20), "timeline")
    session.set_bit_range_selection(BitRange(0, 1), "hex")
    assert seen == []


def test_multiple_subscribers(session):
    first, second = [], []
    session.subscribe(first.append)
    session.subscribe(second.append)
    session.set_frame_selection(FrameKey("A", 5), "keyboard")
    assert len(first) == 1
    assert len(second) == 1


def test_clears_do_not_notify(session):
    seen = []
    session.subscribe(seen.append)
    session.set_frame_selection(FrameKey("A", 5), "timeline")
    session.clear_temporal()
    session.clear_all()
    assert len(seen) == 1


def test_scoped_subscription(session):
    seen = []
    with session.subscribed(seen.append) as sub:
        session.set_frame_selection(FrameKey("A", 1), "timeline")
        assert sub.active
    session.set_frame_selection(FrameKey("A", 2), "timeline")
    assert len(seen) == 1
    assert session.subscriber_count == 0


def test_faulty_subscriber_does_not_break_session(session):
    seen = []

    def broken(_change):
        raise RuntimeError("boom")

    session.subscribe(broken)
    session.subscribe(seen.append)
    session.set_frame_selection(FrameKey("A", 7), "timeline")
    assert session.selection.frame == FrameKey("A", 7)
    assert len(seen) == 1


def test_strict_subscriber_errors():
    with SelectionSession(isolate_subscriber_errors=False) as s:
        def broken(_change):
            raise RuntimeError("boom")

        s.subscribe(broken)
        with pytest.raises(RuntimeError, match="boom"):
            s.set_frame_selection(FrameKey("A", 7), "timeline")
        # state is committed before subscribers run
        assert s.selection.frame == FrameKey("A", 7)


def test_subscriber_may_write_back(session):
    """A panel reacting to a change can write again from inside its callback."""
    def follow_unit(change):
        if change.source.panel is SelectionPanel.HEX and change.selection.syntax_node is None:
            session.set_syntax_selection(SyntaxNodeId(["obu"]), "syntax")

    session.subscribe(follow_unit)
    session.set_unit_selection(UnitKey("A", "OBU", 0, 4), "hex")
    assert session.selection.syntax_node == SyntaxNodeId(["obu"])
    assert session.selection.source.panel is SelectionPanel.SYNTAX


def test_sessions_are_independent():
    with SelectionSession() as a, SelectionSession() as b:
        seen = []
        b.subscribe(seen.append)
        a.set_frame_selection(FrameKey("A", 1), "timeline")
        assert b.selection is None
        assert seen == []


def test_select_spatial_block(session):
    state = session.select_spatial_block(12, SpatialBlock(64, 32, 16, 16), "main")
    assert state.temporal == TemporalSelection.block_at(12, SpatialBlock(64, 32, 16, 16))
    assert state.cursor.spatial_pos == (64, 32)
    assert state.source.panel is SelectionPanel.MAIN
    with pytest.raises(TypeError):
        session.select_spatial_block(12, (64, 32, 16, 16), "main")


def test_resize_block_moves_cursor(session):
    session.select_spatial_block(4, SpatialBlock(64, 32, 16, 16), "main")
    state = session.resize_block("top-left", "minimap", x=48, y=16, w=32, h=32)
    assert state.temporal.block == SpatialBlock(48, 16, 32, 32)
    assert state.cursor.spatial_pos == (48, 16)
    assert state.current_frame == 4
    assert state.source.panel is SelectionPanel.MINIMAP

    state = session.resize_block("bottom-right", "main", w=8, h=8)
    assert state.temporal.block == SpatialBlock(48, 16, 8, 8)
    assert state.cursor.spatial_pos == (48, 16)


def test_resize_block_without_block_is_noop(session):
    received = []
    session.subscribe(received.append)
    assert session.resize_block("bottom", "main", h=4) is None

    session.set_temporal_selection(TemporalSelection.point(3), "timeline")
    before = session.selection
    assert session.resize_block("bottom", "main", h=4) is before
    assert len(received) == 1
