import threading
from datetime import datetime, timedelta, timezone

_lock = threading.Lock()
_last: datetime | None = None


def utcnow() -> datetime:
    """Aware UTC now, strictly increasing within the process.

    Creation timestamps order rows; on a coarse clock two rows could
    otherwise share a value and come back in arbitrary order.
    """
    global _last
    now = datetime.now(timezone.utc)
    with _lock:
        if _last is not None and now <= _last:
            now = _last + timedelta(microseconds=1)
        _last = now
    return now
