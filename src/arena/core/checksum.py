from __future__ import annotations

import hashlib
import json
from collections import deque
from dataclasses import fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any


def to_plain(value: Any) -> Any:
    """Convert contracts into JSON-ready values; god-mode actions keep their ``kind`` tag."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        payload = {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}
        kind = getattr(type(value), "kind", None)
        if isinstance(kind, str):
            payload = {"kind": kind, **payload}
        return payload
    if isinstance(value, dict):
        return {
            (k.value if isinstance(k, Enum) else str(k)): to_plain(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple, deque)):
        return [to_plain(v) for v in value]
    return value


def stable_json(value: Any) -> str:
    return json.dumps(to_plain(value), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def stable_checksum(value: Any) -> str:
    return hashlib.sha256(stable_json(value).encode("utf-8")).hexdigest()
