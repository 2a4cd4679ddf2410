from __future__ import annotations

import json
from pathlib import Path

import duckdb

from arena.contracts import ActionType, ErrorCode
from arena.persistence import ArchivePolicy
from arena.simulation import ArenaRuntime, MatchEngine
from tests.helpers import create_via_runtime, request


def test_runtime_happy_path_returns_plain_data():
    runtime = ArenaRuntime()
    match_id = create_via_runtime(runtime)

    queued = request(
        runtime,
        ActionType.QUEUE_GOD_MODE,
        {"match_id": match_id, "actions": [{"kind": "global_event", "event": "toxic_fog"}]},
    )
    assert queued.success
    assert queued.data == {"match_id": match_id, "accepted_actions": 1, "pending_actions": 1}

    state = request(runtime, "get_match_state", {"match_id": match_id})
    assert state.success
    assert state.data["god_mode"]["phase"] == "god_mode"
    assert state.data["god_mode"]["pending_actions"] == [{"kind": "global_event", "event": "toxic_fog"}]

    advanced = request(runtime, ActionType.ADVANCE_TURN, {"match_id": match_id})
    assert advanced.success
    assert advanced.data["turn_number"] == 1
    assert advanced.data["event"]["phase"] == "bloodbath"
    assert advanced.data["finished"] is False
    json.dumps(advanced.data)


def test_runtime_reports_validation_failures():
    runtime = ArenaRuntime()
    bad_create = request(runtime, ActionType.CREATE_MATCH, {"roster_character_ids": ["a", "a"], "settings": {"seed": ""}})
    assert not bad_create.success
    assert bad_create.data["error_code"] == ErrorCode.VALIDATION_FAILED.value
    codes = {issue["code"] for issue in bad_create.data["issues"]}
    assert {"ROSTER_SIZE", "ROSTER_DUPLICATE", "INVALID_SEED"} <= codes

    match_id = create_via_runtime(runtime)
    bad_actions = request(
        runtime,
        ActionType.QUEUE_GOD_MODE,
        {
            "match_id": match_id,
            "actions": [
                {"kind": "localized_fire", "location": "volcano", "persistence_turns": 9},
                {"kind": "resource_adjustment", "target_id": "x", "delta": 500, "resource": "food"},
            ],
        },
    )
    assert bad_actions.data["error_code"] == ErrorCode.VALIDATION_FAILED.value
    paths = {issue["field_path"] for issue in bad_actions.data["issues"]}
    assert paths == {
        "actions[0].location",
        "actions[0].persistence_turns",
        "actions[1].resource",
        "actions[1].delta",
    }
    assert runtime.engine.get_match_state(match_id).god_mode.pending_actions == []

    missing_id = request(runtime, ActionType.ADVANCE_TURN, {})
    assert missing_id.data["error_code"] == ErrorCode.VALIDATION_FAILED.value
    assert not runtime.halted


def test_runtime_maps_engine_errors():
    runtime = ArenaRuntime()
    missing = request(runtime, ActionType.START_MATCH, {"match_id": "match_missing"})
    assert missing.data["error_code"] == ErrorCode.MATCH_NOT_FOUND.value
    state = request(runtime, ActionType.GET_MATCH_STATE, {"match_id": "match_missing"})
    assert state.data["error_code"] == ErrorCode.MATCH_NOT_FOUND.value
    bad_envelope = request(runtime, ActionType.RESUME_MATCH, {"envelope": 42})
    assert bad_envelope.data["error_code"] == ErrorCode.SNAPSHOT_INVALID.value


def test_unsupported_action_does_not_halt():
    runtime = ArenaRuntime()
    result = request(runtime, "teleport_everyone", {})
    assert not result.success
    assert result.data["error_code"] == ErrorCode.UNSUPPORTED_ACTION.value
    assert not runtime.halted


def test_snapshot_round_trip_through_runtime():
    runtime = ArenaRuntime()
    match_id = create_via_runtime(runtime)
    request(runtime, ActionType.ADVANCE_TURN, {"match_id": match_id})
    exported = request(runtime, ActionType.EXPORT_SNAPSHOT, {"match_id": match_id})
    assert exported.success

    other = ArenaRuntime()
    resumed = request(other, ActionType.RESUME_MATCH, {"envelope": json.dumps(exported.data)})
    assert resumed.success
    assert resumed.data["match_id"] == match_id
    assert resumed.data["turn_number"] == 1


def test_integrity_failure_hard_stops_runtime(tmp_path: Path):
    engine = MatchEngine(catalog_builder=lambda turn_number, alive_count: [])
    runtime = ArenaRuntime(root=tmp_path, engine=engine)
    match_id = create_via_runtime(runtime)

    failed = request(runtime, ActionType.ADVANCE_TURN, {"match_id": match_id})
    assert not failed.success
    assert failed.data["error_code"] == "NO_ELIGIBLE_TEMPLATES"
    assert runtime.halted
    assert runtime.last_forensic_path is not None
    forensic = json.loads(Path(runtime.last_forensic_path).read_text(encoding="utf-8"))
    assert forensic["engine_scope"] == "catalog"
    assert forensic["identifiers"] == {"phase": "bloodbath"}

    after = request(runtime, ActionType.GET_MATCH_STATE, {"match_id": match_id})
    assert not after.success
    assert after.data["error_code"] == ErrorCode.RUNTIME_HALTED.value


def test_integrity_failure_without_root_keeps_artifact_in_memory():
    runtime = ArenaRuntime(engine=MatchEngine(catalog_builder=lambda turn_number, alive_count: []))
    match_id = create_via_runtime(runtime)
    request(runtime, ActionType.ADVANCE_TURN, {"match_id": match_id})
    assert runtime.halted
    assert runtime.last_forensic_path is None
    assert runtime.last_forensic_artifact is not None
    assert runtime.last_forensic_artifact.error_code == "NO_ELIGIBLE_TEMPLATES"


def _play_out(runtime: ArenaRuntime, match_id: str) -> dict:
    for _ in range(500):
        advanced = request(runtime, ActionType.ADVANCE_TURN, {"match_id": match_id})
        assert advanced.success
        if advanced.data["finished"]:
            return advanced.data
    raise AssertionError("match did not finish")


def test_finished_matches_are_archived_and_exported(tmp_path: Path):
    runtime = ArenaRuntime(root=tmp_path)
    match_id = create_via_runtime(runtime, seed="archive-runtime")
    final = _play_out(runtime, match_id)
    assert final["archived"] is True
    assert [row["match_id"] for row in runtime.archive.list_archived_matches()] == [match_id]

    exported = request(runtime, ActionType.EXPORT_ARCHIVE, {})
    assert exported.success
    assert len(exported.data["paths"]) == 6
    assert all(Path(p).exists() for p in exported.data["paths"])
    assert all(Path(p).parent == tmp_path / "exports" for p in exported.data["paths"])


def test_policy_can_skip_archiving_but_export_tags_match(tmp_path: Path):
    policy = ArchivePolicy(archive_finished=False, archive_god_mode_matches=False, archive_long_matches=False)
    runtime = ArenaRuntime(root=tmp_path, archive_policy=policy)
    match_id = create_via_runtime(runtime, seed="policy-skip")
    final = _play_out(runtime, match_id)
    assert final["archived"] is False
    assert runtime.archive.list_archived_matches() == []

    exported = request(runtime, ActionType.EXPORT_ARCHIVE, {"match_id": match_id})
    assert exported.success
    assert [row["match_id"] for row in runtime.archive.list_archived_matches()] == [match_id]

    missing = request(runtime, ActionType.EXPORT_ARCHIVE, {"match_id": "match_missing"})
    assert missing.data["error_code"] == ErrorCode.MATCH_NOT_FOUND.value


def test_export_archive_needs_root():
    result = request(ArenaRuntime(), ActionType.EXPORT_ARCHIVE, {})
    assert not result.success
    assert result.data["error_code"] == ErrorCode.UNSUPPORTED_ACTION.value


def test_export_archive_with_match_id_writes_only_that_match(tmp_path: Path):
    runtime = ArenaRuntime(root=tmp_path)
    first = create_via_runtime(runtime, seed="export-first")
    second = create_via_runtime(runtime, seed="export-second")
    _play_out(runtime, first)
    _play_out(runtime, second)
    assert len(runtime.archive.list_archived_matches()) == 2

    exported = request(runtime, ActionType.EXPORT_ARCHIVE, {"match_id": first})
    assert exported.success
    matches = (tmp_path / "exports" / "matches.csv").as_posix()
    ledger = (tmp_path / "exports" / "turn_ledger.csv").as_posix()
    conn = duckdb.connect()
    try:
        assert conn.execute(f"SELECT match_id FROM read_csv_auto('{matches}')").fetchall() == [(first,)]
        ledger_ids = conn.execute(f"SELECT DISTINCT match_id FROM read_csv_auto('{ledger}')").fetchall()
        assert ledger_ids == [(first,)]
    finally:
        conn.close()
