from __future__ import annotations

import json
from collections import deque
from datetime import datetime
from typing import Any, Mapping

from arena.contracts import (
    ArenaState,
    CyclePhase,
    ErrorCode,
    EventRecord,
    EventProfile,
    EventType,
    Location,
    Match,
    MatchPhase,
    MatchSettings,
    Participant,
    ParticipantStatus,
    Relation,
    SimulationSpeed,
    SourceType,
    StoredMatch,
    SurpriseLevel,
    ValidationError,
    ValidationIssue,
    action_from_plain,
)
from arena.core import SNAPSHOT_VERSION, stable_checksum, to_plain

MAX_SNAPSHOT_BYTES = 262_144
SNAPSHOT_SECTIONS = ("match", "settings", "participants", "recent_events", "arena")


class SnapshotError(ValueError):
    def __init__(self, code: ErrorCode, message: str, issues: list[ValidationIssue] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.issues = issues or []


def snapshot_checksum(snapshot: Mapping[str, Any]) -> str:
    return stable_checksum({"snapshot_version": SNAPSHOT_VERSION, "snapshot": snapshot})


def build_snapshot_envelope(stored: StoredMatch) -> dict[str, Any]:
    snapshot = {
        "match": to_plain(stored.match),
        "settings": to_plain(stored.settings),
        "participants": to_plain(stored.participants),
        "recent_events": to_plain(stored.recent_events),
        "arena": to_plain(stored.arena),
    }
    return {
        "snapshot_version": SNAPSHOT_VERSION,
        "checksum": snapshot_checksum(snapshot),
        "snapshot": snapshot,
    }


def verify_snapshot_envelope(raw: Mapping[str, Any] | str, max_recent_events: int = 12) -> StoredMatch:
    """Check version, shape and checksum of an envelope and rebuild the stored match it carries."""
    if isinstance(raw, str):
        if len(raw.encode("utf-8")) > MAX_SNAPSHOT_BYTES:
            raise SnapshotError(ErrorCode.SNAPSHOT_INVALID, f"snapshot exceeds {MAX_SNAPSHOT_BYTES} bytes")
        try:
            payload: Any = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise SnapshotError(ErrorCode.INVALID_JSON, f"snapshot is not valid JSON: {exc.msg}") from exc
    else:
        if len(json.dumps(to_plain(raw), default=str).encode("utf-8")) > MAX_SNAPSHOT_BYTES:
            raise SnapshotError(ErrorCode.SNAPSHOT_INVALID, f"snapshot exceeds {MAX_SNAPSHOT_BYTES} bytes")
        payload = raw

    version = payload.get("snapshot_version") if isinstance(payload, Mapping) else None
    if isinstance(version, bool) or version != SNAPSHOT_VERSION:
        raise SnapshotError(ErrorCode.SNAPSHOT_VERSION_UNSUPPORTED, f"unsupported snapshot_version {version!r}")

    checksum = payload.get("checksum")
    snapshot = payload.get("snapshot")
    issues: list[ValidationIssue] = []
    if not isinstance(checksum, str) or not checksum:
        issues.append(ValidationIssue("REQUIRED_TEXT", "blocking", "checksum", "", "checksum must be a non-empty string"))
    if not isinstance(snapshot, Mapping):
        issues.append(ValidationIssue("INVALID_SNAPSHOT", "blocking", "snapshot", "", "snapshot must be an object"))
    else:
        for section in SNAPSHOT_SECTIONS:
            if section not in snapshot:
                issues.append(ValidationIssue("MISSING_SECTION", "blocking", f"snapshot.{section}", "", "section is required"))
    if issues:
        raise SnapshotError(ErrorCode.SNAPSHOT_INVALID, "snapshot envelope is malformed", issues)

    if snapshot_checksum(snapshot).lower() != checksum.lower():
        raise SnapshotError(ErrorCode.SNAPSHOT_INVALID, "snapshot checksum mismatch")

    try:
        return stored_match_from_snapshot(snapshot, max_recent_events)
    except ValidationError as exc:
        raise SnapshotError(ErrorCode.SNAPSHOT_INVALID, "snapshot holds invalid god-mode actions", exc.issues) from exc
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise SnapshotError(ErrorCode.SNAPSHOT_INVALID, f"snapshot payload is invalid: {exc}") from exc


def _parse_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


def stored_match_from_snapshot(snapshot: Mapping[str, Any], max_recent_events: int = 12) -> StoredMatch:
    m = snapshot["match"]
    match = Match(
        id=str(m["id"]),
        seed=m["seed"],
        ruleset_version=str(m["ruleset_version"]),
        phase=MatchPhase(m["phase"]),
        cycle_phase=CyclePhase(m["cycle_phase"]),
        turn_number=int(m["turn_number"]),
        tension_level=float(m["tension_level"]),
        created_at=datetime.fromisoformat(m["created_at"]),
        ended_at=_parse_time(m.get("ended_at")),
    )
    s = snapshot["settings"]
    settings = MatchSettings(
        surprise_level=SurpriseLevel(s["surprise_level"]),
        event_profile=EventProfile(s["event_profile"]),
        simulation_speed=SimulationSpeed(s["simulation_speed"]),
        seed=s.get("seed"),
    )
    participants = [
        Participant(
            id=str(p["id"]),
            match_id=str(p["match_id"]),
            character_id=str(p["character_id"]),
            display_name=str(p["display_name"]),
            current_health=int(p["current_health"]),
            status=ParticipantStatus(p["status"]),
            streak_score=int(p["streak_score"]),
        )
        for p in snapshot["participants"]
    ]
    events = deque(
        (
            EventRecord(
                id=str(e["id"]),
                match_id=str(e["match_id"]),
                template_id=str(e["template_id"]),
                turn_number=int(e["turn_number"]),
                type=EventType(e["type"]),
                source_type=SourceType(e["source_type"]),
                phase=CyclePhase(e["phase"]),
                location=Location(e["location"]),
                participant_ids=[str(pid) for pid in e["participant_ids"]],
                participant_count=int(e["participant_count"]),
                intensity=int(e["intensity"]),
                narrative_text=str(e["narrative_text"]),
                lethal=bool(e["lethal"]),
                created_at=datetime.fromisoformat(e["created_at"]),
            )
            for e in snapshot["recent_events"]
        ),
        maxlen=max_recent_events,
    )
    a = snapshot["arena"]
    arena = ArenaState(
        locations={str(pid): Location(loc) for pid, loc in a["locations"].items()},
        relationships={
            str(src): {str(dst): Relation(rel) for dst, rel in edges.items()}
            for src, edges in a["relationships"].items()
        },
        active_fires={Location(loc): int(turns) for loc, turns in a["active_fires"].items()},
        pending_actions=[
            action_from_plain(raw, f"snapshot.arena.pending_actions[{i}]")
            for i, raw in enumerate(a["pending_actions"])
        ],
    )
    return StoredMatch(match=match, settings=settings, participants=participants, recent_events=events, arena=arena)
