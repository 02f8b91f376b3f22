"""Id and timestamp helpers shared by every collection."""

from __future__ import annotations

import secrets
from datetime import datetime, timezone

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_TOKEN_LEN = 7


def uid(prefix: str = "") -> str:
    """Short random token, e.g. uid("p_") -> "p_k3x9a0b". Collisions are not checked."""
    return prefix + "".join(secrets.choice(_ALPHABET) for _ in range(_TOKEN_LEN))


def now() -> str:
    """Current UTC time as an ISO 8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
