from __future__ import annotations

import json
import logging

from arena.core import LatencyRecorder, emit_structured_log
from arena.core.observability import percentile95
from arena.simulation import MatchEngine
from tests.helpers import create_running_match


def _events(caplog) -> list[dict]:
    return [json.loads(r.getMessage()) for r in caplog.records if r.name == "arena"]


def test_emit_structured_log_writes_json_line(caplog):
    caplog.set_level(logging.INFO, logger="arena")
    record = emit_structured_log("match.custom", match_id="m1", turn_number=3)
    [logged] = _events(caplog)
    assert logged == record
    assert logged["event"] == "match.custom"
    assert "timestamp" in logged


def test_engine_logs_lifecycle_events(caplog):
    caplog.set_level(logging.INFO, logger="arena")
    engine = MatchEngine()
    match_id = create_running_match(engine, seed="logged")
    engine.advance_turn(match_id)
    engine.start_match(match_id)

    names = [e["event"] for e in _events(caplog)]
    assert names[:2] == ["match.created", "match.started"]
    assert "match.turn.event" in names
    assert "metric.latency" in names
    assert names[-1] == "match.start.rejected"

    turn = next(e for e in _events(caplog) if e["event"] == "match.turn.event")
    assert turn["match_id"] == match_id
    assert turn["seed"] == "logged"
    assert turn["ruleset_version"] == "v1.0.0"
    assert turn["snapshot_version"] == 1
    assert len(turn["replay_signature"]) == 64

    latency = next(e for e in _events(caplog) if e["event"] == "metric.latency")
    assert latency["metric"] == "simulation.tick"
    assert latency["operation"] == "advance_turn"


def test_resume_logs_rejection(caplog):
    caplog.set_level(logging.INFO, logger="arena")
    MatchEngine().resume_match("{broken")
    [logged] = [e for e in _events(caplog) if e["event"] == "snapshot.resume"]
    assert logged["accepted"] is False
    assert logged["reason"] == "INVALID_JSON"


def test_latency_recorder_keeps_bounded_series():
    recorder = LatencyRecorder(limit=5)
    for value in (1.0, 2.0, 3.0, 4.0, 5.0, 100.0):
        summary = recorder.record("simulation.tick", value, {"operation": "advance_turn"})
    assert summary["samples"] == 5
    assert summary["p95_ms"] == 100.0
    other = recorder.record("simulation.tick", 7.0, {"operation": "other"})
    assert other["samples"] == 1


def test_percentile95():
    assert percentile95([]) == 0.0
    assert percentile95([float(v) for v in range(1, 101)]) == 95.0
