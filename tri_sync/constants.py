import time

# Stream used when nothing has been selected yet
DEFAULT_STREAM_ID = "A"

# Fixed-width syntax field types and their size in bits
FIXED_WIDTH_FIELD_BITS = {
    "u1": 1,
    "u2": 2,
    "u3": 3,
    "u4": 4,
    "u5": 5,
    "u6": 6,
    "u7": 7,
    "u8": 8,
}

# Variable-length codes have no static width; the derived bit range collapses to zero
VARIABLE_LENGTH_FIELD_TYPES = ("ue(v)", "leb128")
VARIABLE_LENGTH_FIELD_BITS = 0

# Width used for unknown or missing field types
DEFAULT_FIELD_BITS = 32

# Selection history ring size
DEFAULT_HISTORY_SIZE = 100


def now_ms():
    """Wall clock in integer milliseconds, used to stamp selection provenance."""
    return time.time_ns() // 1_000_000
