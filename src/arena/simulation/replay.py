from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from arena.contracts import ActionRequest, ActionType
from arena.core import make_id
from arena.simulation.roster import build_default_roster
from arena.simulation.runtime import ArenaRuntime

ID_FIELDS = ("target_id", "source_id", "tribute_a_id", "tribute_b_id")


@dataclass(slots=True)
class ReplayStep:
    action_type: str
    payload: dict


class ReplayHarness:
    """Records a match script and runs it on two fresh runtimes to compare turn signatures.

    God-mode payloads name tributes by character id; ids are mapped to each run's participant ids.
    """

    def __init__(self, seed: str, roster_size: int = 12) -> None:
        self.seed = seed
        self.roster_size = roster_size
        self.steps: list[ReplayStep] = []

    def record_advance(self, turns: int = 1) -> None:
        for _ in range(turns):
            self.steps.append(ReplayStep(action_type=ActionType.ADVANCE_TURN.value, payload={}))

    def record_god_mode(self, actions: list[dict[str, Any]]) -> None:
        self.steps.append(ReplayStep(action_type=ActionType.QUEUE_GOD_MODE.value, payload={"actions": actions}))

    def save(self, path: Path) -> None:
        data = {"seed": self.seed, "roster_size": self.roster_size, "steps": [{"action_type": s.action_type, "payload": s.payload} for s in self.steps]}
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    @staticmethod
    def load(path: Path) -> ReplayHarness:
        data = json.loads(path.read_text(encoding="utf-8"))
        harness = ReplayHarness(seed=str(data["seed"]), roster_size=int(data["roster_size"]))
        for raw in data["steps"]:
            harness.steps.append(ReplayStep(action_type=raw["action_type"], payload=raw["payload"]))
        return harness

    def replay(self) -> tuple[dict, dict]:
        return self._run(), self._run()

    def _run(self) -> dict:
        runtime = ArenaRuntime()
        roster, names = build_default_roster(self.roster_size)
        created = runtime.handle_action(
            ActionRequest(
                make_id("req"),
                ActionType.CREATE_MATCH,
                {"roster_character_ids": roster, "participant_names": names, "settings": {"seed": self.seed}},
            )
        )
        if not created.success:
            raise RuntimeError(f"replay bootstrap failed: {created.message}")
        match_id = created.data["match_id"]
        started = runtime.handle_action(ActionRequest(make_id("req"), ActionType.START_MATCH, {"match_id": match_id}))
        if not started.success:
            raise RuntimeError(f"replay bootstrap failed: {started.message}")

        stored = runtime.engine.store.get(match_id)
        id_map = {p.character_id: p.id for p in stored.participants} if stored else {}
        for step in self.steps:
            payload = {"match_id": match_id, **self._map_ids(step.payload, id_map)}
            runtime.handle_action(ActionRequest(make_id("req"), step.action_type, payload))
        return self._fingerprint(runtime, match_id)

    def _map_ids(self, payload: dict, id_map: dict[str, str]) -> dict:
        if "actions" not in payload:
            return dict(payload)
        mapped = []
        for action in payload["actions"]:
            action = dict(action)
            for key in ID_FIELDS:
                if key in action:
                    action[key] = id_map.get(action[key], action[key])
            if "tribute_ids" in action:
                action["tribute_ids"] = [id_map.get(i, i) for i in action["tribute_ids"]]
            mapped.append(action)
        return {**payload, "actions": mapped}

    def _fingerprint(self, runtime: ArenaRuntime, match_id: str) -> dict:
        stored = runtime.engine.store.get(match_id)
        if stored is None:
            raise RuntimeError("replay runtime lost its match")
        by_id = {p.id: p for p in stored.participants}
        alive = [p for p in stored.participants if p.is_alive]
        return {
            "phase": stored.match.phase.value,
            "turn_number": stored.match.turn_number,
            "tension_level": stored.match.tension_level,
            "signatures": [entry.replay_signature for entry in stored.ledger],
            "survivors": sorted(p.character_id for p in alive),
            "eliminated": [
                [by_id[pid].character_id for pid in entry.eliminated_ids] for entry in stored.ledger
            ],
        }
