"""Wall clock used by the session and token stores."""
import time


def now() -> int:
    """Current Unix time in whole seconds."""
    return int(time.time())
