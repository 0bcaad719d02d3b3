import time
from datetime import datetime, timezone

def now_ms() -> int:
    return int(time.time() * 1000)

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def iso_from_ms(ms: int) -> str:
    """Epoch milliseconds -> ISO-8601 UTC with a trailing 'Z'."""
    dt = datetime.fromtimestamp(int(ms) / 1000.0, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
