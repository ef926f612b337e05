from enum import Enum


class SessionState(str, Enum):
    """Lifecycle of one editing session. PROCESSING is the only transient state."""
    EMPTY = "empty"  # nothing uploaded
    LOADED = "loaded"  # has source, no result
    PROCESSING = "processing"  # an effect is running
    READY = "ready"  # has source + result


class View(str, Enum):
    ORIGINAL = "original"
    RESULT = "result"
