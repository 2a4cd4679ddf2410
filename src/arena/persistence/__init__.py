from .archive import ARCHIVE_TABLES, MatchArchive
from .match_store import InMemoryMatchStore, MatchStore
from .retention import ArchivePolicy, MatchArchiveContext, should_archive_match
from .snapshot import (
    MAX_SNAPSHOT_BYTES,
    SnapshotError,
    build_snapshot_envelope,
    snapshot_checksum,
    stored_match_from_snapshot,
    verify_snapshot_envelope,
)

__all__ = [
    "ARCHIVE_TABLES",
    "ArchivePolicy",
    "InMemoryMatchStore",
    "MAX_SNAPSHOT_BYTES",
    "MatchArchive",
    "MatchArchiveContext",
    "MatchStore",
    "SnapshotError",
    "build_snapshot_envelope",
    "should_archive_match",
    "snapshot_checksum",
    "stored_match_from_snapshot",
    "verify_snapshot_envelope",
]
