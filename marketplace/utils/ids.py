import secrets
import string
import time
from datetime import datetime, timezone

_BASE36 = string.digits + string.ascii_lowercase


def generate_id() -> str:
    """Millisecond timestamp followed by nine random base-36 characters."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{int(time.time() * 1000)}{suffix}"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
