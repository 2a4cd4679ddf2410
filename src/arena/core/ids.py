from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

ID_HEX_LENGTH = 12


def now_utc() -> datetime:
    return datetime.now(UTC)


def utc_iso() -> str:
    return now_utc().isoformat()


def make_id(prefix: str, length: int = ID_HEX_LENGTH) -> str:
    """Prefixed random id such as ``match_3f2a9c01b4de``; identity only, never an input to match draws."""
    return f"{prefix}_{uuid4().hex[:length]}"
