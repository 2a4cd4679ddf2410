from __future__ import annotations

from typing import Protocol

from arena.contracts import StoredMatch


class MatchStore(Protocol):
    def get(self, match_id: str) -> StoredMatch | None: ...

    def put(self, stored: StoredMatch) -> None: ...

    def delete(self, match_id: str) -> bool: ...

    def list_ids(self) -> list[str]: ...

    def clear(self) -> None: ...


class InMemoryMatchStore(MatchStore):
    """Process-local store; nothing survives a restart."""

    def __init__(self) -> None:
        self._matches: dict[str, StoredMatch] = {}

    def get(self, match_id: str) -> StoredMatch | None:
        return self._matches.get(match_id)

    def put(self, stored: StoredMatch) -> None:
        self._matches[stored.match.id] = stored

    def delete(self, match_id: str) -> bool:
        return self._matches.pop(match_id, None) is not None

    def list_ids(self) -> list[str]:
        return list(self._matches)

    def clear(self) -> None:
        self._matches.clear()
