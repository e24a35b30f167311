import threading

# Internal counter and lock to produce monotonically increasing IDs
_counter = 0
_counter_lock = threading.Lock()
_ID_LENGTH = 8


def get_id(prefix: str = "") -> str:
    """Return a monotonically increasing hex ID (uppercase), optionally prefixed.

    IDs are zero-padded to at least `_ID_LENGTH` hex digits but may grow
    in length as the counter increases. The prefix names the kind of entity
    ("ev", "cond", "samp", "proc") so trace and log records stay readable.
    """
    global _counter
    with _counter_lock:
        value = _counter
        _counter += 1

    ident = format(value, f'0{_ID_LENGTH}X')
    return f"{prefix}-{ident}" if prefix else ident
