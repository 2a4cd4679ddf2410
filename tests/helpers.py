from __future__ import annotations

from typing import Any, Sequence

from arena.contracts import (
    ActionRequest,
    ActionResult,
    ActionType,
    AdvanceTurnResponse,
    MatchSettings,
    ParticipantStatus,
    RandomSource,
)
from arena.core import make_id
from arena.simulation import MatchEngine
from arena.simulation.roster import build_default_roster


class ScriptedRandom(RandomSource):
    """Replays a fixed list of draws, cycling when exhausted."""

    def __init__(self, values: Sequence[float]) -> None:
        self.values = list(values)
        self.calls = 0

    def __call__(self) -> float:
        return self.rand()

    def rand(self) -> float:
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value

    def pick_index(self, length: int) -> int:
        return min(length - 1, int(self.rand() * length))

    def randint(self, a: int, b: int) -> int:
        return a + self.pick_index(b - a + 1)

    def choice(self, items: Sequence[Any]) -> Any:
        return items[self.pick_index(len(items))]

    def shuffle(self, items: list[Any]) -> None:
        return None

    def spawn(self, substream_id: str) -> RandomSource:
        return ScriptedRandom(self.values)


def create_running_match(engine: MatchEngine, size: int = 10, seed: str | None = "fixed-1") -> str:
    roster, names = build_default_roster(size)
    created = engine.create_match(roster, names, MatchSettings(seed=seed))
    if not created.ok or created.value is None:
        raise RuntimeError(f"create_running_match failed: {created.error}")
    match_id = created.value.match_id
    started = engine.start_match(match_id)
    if not started.ok:
        raise RuntimeError(f"start failed: {started.error}")
    return match_id


def run_to_finish(engine: MatchEngine, match_id: str, max_turns: int = 1000) -> list[AdvanceTurnResponse]:
    responses: list[AdvanceTurnResponse] = []
    for _ in range(max_turns):
        result = engine.advance_turn(match_id)
        if not result.ok or result.value is None:
            raise RuntimeError(f"advance failed: {result.error}")
        responses.append(result.value)
        if result.value.finished:
            return responses
    raise RuntimeError(f"match {match_id} did not finish within {max_turns} turns")


def eliminate(engine: MatchEngine, match_id: str, keep_alive: int) -> list[str]:
    """Test-only shortcut that leaves exactly `keep_alive` participants standing."""
    stored = engine.store.get(match_id)
    assert stored is not None
    alive = [p for p in stored.participants if p.is_alive]
    for participant in alive[keep_alive:]:
        participant.current_health = 0
        participant.status = ParticipantStatus.ELIMINATED
    engine.store.put(stored)
    return [p.id for p in alive[:keep_alive]]


def request(runtime, action_type: ActionType | str, payload: dict[str, Any]) -> ActionResult:
    return runtime.handle_action(ActionRequest(make_id("req"), action_type, payload))


def create_via_runtime(runtime, size: int = 10, seed: str | None = "runtime-seed") -> str:
    roster, names = build_default_roster(size)
    created = request(
        runtime,
        ActionType.CREATE_MATCH,
        {"roster_character_ids": roster, "participant_names": names, "settings": {"seed": seed}},
    )
    if not created.success:
        raise RuntimeError(f"create_via_runtime failed: {created.message} data={created.data}")
    match_id = created.data["match_id"]
    started = request(runtime, ActionType.START_MATCH, {"match_id": match_id})
    if not started.success:
        raise RuntimeError(f"start failed: {started.message}")
    return match_id
