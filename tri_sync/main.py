import sys
import json
import argparse
import logging
from .selection_model import BitRange, FrameKey, SyntaxNodeId, TemporalSelection, UnitKey
from .session import SelectionSession
from .log_config import setup_logging

logger = logging.getLogger(__name__)


def _facet(parser):
    def read(step, key):
        value = step.get(key)
        return parser(value) if value is not None else None
    return read


_ACTIONS = {
    "set_temporal": ("temporal", _facet(TemporalSelection.from_dict),
                     SelectionSession.set_temporal_selection),
    "set_frame": ("frame", _facet(FrameKey.from_dict), SelectionSession.set_frame_selection),
    "set_unit": ("unit", _facet(UnitKey.from_dict), SelectionSession.set_unit_selection),
    "set_syntax": ("node", _facet(SyntaxNodeId.from_dict), SelectionSession.set_syntax_selection),
    "set_bit_range": ("bitRange", _facet(BitRange.from_dict),
                      SelectionSession.set_bit_range_selection),
}


def replay(session, steps):
    """
    Apply a list of selection actions to ``session``.

    Each step is a dict such as
    ``{"action": "set_frame", "panel": "filmstrip", "frame": {"stream": "A", "frameIndex": 5}}``.
    ``clear_temporal`` and ``clear_all`` take no arguments; ``resize_block``
    takes a ``handle`` plus the edges that handle moves (``x``/``y``/``w``/``h``).

    Returns:
        SelectionState: Selection after the last step (None if cleared).
    """
    if not isinstance(steps, list):
        raise ValueError("Selection script must be a JSON list of actions")
    for i, step in enumerate(steps):
        action = step.get("action") if isinstance(step, dict) else None
        if action == "clear_temporal":
            session.clear_temporal()
        elif action == "clear_all":
            session.clear_all()
        elif action == "resize_block":
            if "panel" not in step or "handle" not in step:
                raise ValueError(f"Step {i}: 'resize_block' needs a panel and a handle")
            edges = {k: step[k] for k in ("x", "y", "w", "h") if k in step}
            session.resize_block(step["handle"], step["panel"], **edges)
        elif action in _ACTIONS:
            key, read, setter = _ACTIONS[action]
            if "panel" not in step:
                raise ValueError(f"Step {i}: '{action}' needs a panel")
            try:
                value = read(step, key)
            except (KeyError, TypeError, AttributeError) as e:
                raise ValueError(f"Step {i}: malformed '{key}': {e}") from e
            setter(session, value, step["panel"])
        else:
            raise ValueError(f"Step {i}: unknown action {action!r}")
        logger.debug("Step %d (%s) applied", i, action)
    return session.selection


def main(argv=None):
    parser = argparse.ArgumentParser(description="Tri-Sync selection replay tool")
    parser.add_argument("script", help="JSON file with a list of selection actions")
    parser.add_argument("-o", "--output", dest="output_file", type=str, help="Write the final selection to this file instead of stdout")
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation of the output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose (DEBUG) logging")

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        with open(args.script) as f:
            steps = json.load(f)
        with SelectionSession() as session:
            selection = replay(session, steps)
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    text = json.dumps(selection.to_dict() if selection else None, indent=args.indent)
    if args.output_file:
        with open(args.output_file, "w") as f:
            f.write(text + "\n")
    else:
        print(text)
    sys.exit(0)

if __name__ == "__main__":
    main()
