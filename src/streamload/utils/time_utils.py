import time


def now_ms() -> float:
    """Wall clock time in epoch milliseconds."""
    return time.time() * 1000.0
