from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from arena.contracts import (
    ArenaState,
    CyclePhase,
    EventRecord,
    EventType,
    ForceEncounterAction,
    GlobalEventAction,
    GlobalEventKind,
    GodModeAction,
    LocalizedFireAction,
    Location,
    Participant,
    ParticipantStatus,
    RandomSource,
    Relation,
    ResourceAdjustmentAction,
    ReviveMode,
    ReviveTributeAction,
    SeparateTributesAction,
    SetRelationshipAction,
    SourceType,
    StoredMatch,
)
from arena.core import make_id, now_utc
from arena.simulation.narrative import build_god_mode_narrative

LOCATION_ORDER: tuple[Location, ...] = tuple(Location)

MAX_HEALTH = 100
STANDARD_REVIVE_HEALTH = 50
GLOBAL_DAMAGE: dict[GlobalEventKind, int] = {
    GlobalEventKind.EXTREME_WEATHER: 5,
    GlobalEventKind.TOXIC_FOG: 12,
}
RESUPPLY_HEAL = 10

FIRE_ESCAPE_ROLL = 0.25
FIRE_SEVERE_ROLL = 0.5
FIRE_LIGHT_ROLL = 0.75
FIRE_SEVERE_DAMAGE = 30
FIRE_LIGHT_DAMAGE = 10


@dataclass(slots=True)
class GodModeOutcome:
    events: list[EventRecord] = field(default_factory=list)
    eliminated_ids: list[str] = field(default_factory=list)


def adjacent_locations(location: Location) -> tuple[Location, Location]:
    index = LOCATION_ORDER.index(location)
    return (
        LOCATION_ORDER[(index - 1) % len(LOCATION_ORDER)],
        LOCATION_ORDER[(index + 1) % len(LOCATION_ORDER)],
    )


def set_health(participant: Participant, health: int) -> None:
    participant.current_health = max(0, min(MAX_HEALTH, health))
    if participant.current_health == 0:
        participant.status = ParticipantStatus.ELIMINATED
    elif participant.current_health < MAX_HEALTH:
        participant.status = ParticipantStatus.INJURED
    else:
        participant.status = ParticipantStatus.ALIVE


def find_enemy_pairs(arena: ArenaState, alive_ids: Iterable[str]) -> list[tuple[str, str]]:
    ids = list(alive_ids)
    pairs: list[tuple[str, str]] = []
    for i, a in enumerate(ids):
        for b in ids[i + 1 :]:
            forward = arena.relationships.get(a, {}).get(b)
            backward = arena.relationships.get(b, {}).get(a)
            if Relation.ENEMY in (forward, backward):
                pairs.append((a, b))
    return pairs


class GodModeApplier:
    """Applies persistent fires, then queued operator actions, to a working copy of a match."""

    def apply(self, state: StoredMatch, rng: RandomSource) -> GodModeOutcome:
        outcome = GodModeOutcome()
        by_id = {p.id: p for p in state.participants}

        fires = state.arena.active_fires
        for location in list(fires):
            remaining = fires[location] - 1
            if remaining > 0:
                fires[location] = remaining
                self._fire_round(state, location, rng, outcome, f"god-localized-fire-{location.value}-persist")
            else:
                del fires[location]

        pending = list(state.arena.pending_actions)
        state.arena.pending_actions.clear()
        for action in pending:
            self._apply_action(state, by_id, action, rng, outcome)
        return outcome

    def _apply_action(
        self,
        state: StoredMatch,
        by_id: dict[str, Participant],
        action: GodModeAction,
        rng: RandomSource,
        outcome: GodModeOutcome,
    ) -> None:
        match action:
            case GlobalEventAction(event=event):
                self._global_event(state, event, outcome)
            case LocalizedFireAction(location=location, persistence_turns=persistence):
                fires = state.arena.active_fires
                remaining = max(fires.get(location, 0), persistence)
                if remaining > 0:
                    fires[location] = remaining
                self._fire_round(state, location, rng, outcome, f"god-localized-fire-{location.value}")
            case ForceEncounterAction(tribute_a_id=a_id, tribute_b_id=b_id, location=location):
                self._force_encounter(state, by_id, a_id, b_id, location, outcome)
            case SeparateTributesAction(tribute_ids=tribute_ids):
                self._separate(state, by_id, tribute_ids, rng, outcome)
            case ResourceAdjustmentAction(target_id=target_id, delta=delta, resource=resource):
                self._adjust_resource(state, by_id, target_id, delta, resource, outcome)
            case ReviveTributeAction(target_id=target_id, revive_mode=mode):
                self._revive(state, by_id, target_id, mode, rng, outcome)
            case SetRelationshipAction(source_id=source_id, target_id=target_id, relation=relation):
                self._set_relationship(state, by_id, source_id, target_id, relation, outcome)

    def _global_event(self, state: StoredMatch, event: GlobalEventKind, outcome: GodModeOutcome) -> None:
        affected: list[Participant] = []
        eliminated: list[str] = []
        if event == GlobalEventKind.CORNUCOPIA_RESUPPLY:
            for participant in state.participants:
                if participant.is_alive and state.arena.locations.get(participant.id) == Location.CORNUCOPIA:
                    participant.current_health = min(MAX_HEALTH, participant.current_health + RESUPPLY_HEAL)
                    participant.status = ParticipantStatus.ALIVE
                    affected.append(participant)
            detail = "supplies drop at the Cornucopia"
            event_type = EventType.RESOURCE
        else:
            damage = GLOBAL_DAMAGE[event]
            for participant in state.participants:
                if not participant.is_alive:
                    continue
                set_health(participant, participant.current_health - damage)
                affected.append(participant)
                if not participant.is_alive:
                    eliminated.append(participant.id)
            detail = f"{event.value.replace('_', ' ')} deals {damage} damage"
            event_type = EventType.HAZARD
        self._record(
            state, outcome, f"god-global-{event.value}", event_type, Location.CORNUCOPIA, affected, eliminated, detail
        )

    def _fire_round(
        self, state: StoredMatch, location: Location, rng: RandomSource, outcome: GodModeOutcome, template_id: str
    ) -> None:
        caught = [
            p for p in state.participants if p.is_alive and state.arena.locations.get(p.id) == location
        ]
        eliminated: list[str] = []
        for participant in caught:
            roll = rng()
            if roll < FIRE_ESCAPE_ROLL:
                state.arena.locations[participant.id] = rng.choice(adjacent_locations(location))
            elif roll < FIRE_SEVERE_ROLL:
                set_health(participant, participant.current_health - FIRE_SEVERE_DAMAGE)
            elif roll < FIRE_LIGHT_ROLL:
                set_health(participant, participant.current_health - FIRE_LIGHT_DAMAGE)
            else:
                set_health(participant, 0)
            if not participant.is_alive:
                eliminated.append(participant.id)
        self._record(state, outcome, template_id, EventType.HAZARD, location, caught, eliminated, "fire sweeps the area")

    def _force_encounter(
        self,
        state: StoredMatch,
        by_id: dict[str, Participant],
        a_id: str,
        b_id: str,
        location: Location | None,
        outcome: GodModeOutcome,
    ) -> None:
        found = [by_id[pid] for pid in (a_id, b_id) if pid in by_id]
        if len(found) == 2 and a_id != b_id:
            state.arena.relationships.setdefault(a_id, {})[b_id] = Relation.ENEMY
            state.arena.relationships.setdefault(b_id, {})[a_id] = Relation.ENEMY
            if location is not None:
                state.arena.locations[a_id] = location
                state.arena.locations[b_id] = location
        where = location or (state.arena.locations.get(found[0].id) if found else None) or Location.CORNUCOPIA
        self._record(state, outcome, "god-force-encounter", EventType.COMBAT, where, found, [], "forced to face each other")

    def _separate(
        self,
        state: StoredMatch,
        by_id: dict[str, Participant],
        tribute_ids: tuple[str, ...],
        rng: RandomSource,
        outcome: GodModeOutcome,
    ) -> None:
        moved: list[Participant] = []
        for pid in tribute_ids:
            participant = by_id.get(pid)
            if participant is None:
                continue
            state.arena.locations[pid] = rng.choice(LOCATION_ORDER)
            moved.append(participant)
        where = state.arena.locations[moved[0].id] if moved else Location.CORNUCOPIA
        self._record(
            state, outcome, "god-separate-tributes", EventType.SURPRISE, where, moved, [], "scattered across the arena"
        )

    def _adjust_resource(
        self,
        state: StoredMatch,
        by_id: dict[str, Participant],
        target_id: str,
        delta: int,
        resource: str,
        outcome: GodModeOutcome,
    ) -> None:
        target = by_id.get(target_id)
        affected: list[Participant] = []
        eliminated: list[str] = []
        if target is not None and target.is_alive:
            set_health(target, target.current_health + delta)
            affected.append(target)
            if not target.is_alive:
                eliminated.append(target.id)
        where = (state.arena.locations.get(target_id) if target else None) or Location.CORNUCOPIA
        self._record(
            state,
            outcome,
            "god-resource-adjustment",
            EventType.RESOURCE,
            where,
            affected,
            eliminated,
            f"{resource} {delta:+d}",
        )

    def _revive(
        self,
        state: StoredMatch,
        by_id: dict[str, Participant],
        target_id: str,
        mode: ReviveMode,
        rng: RandomSource,
        outcome: GodModeOutcome,
    ) -> None:
        target = by_id.get(target_id)
        affected: list[Participant] = []
        if target is not None:
            target.current_health = MAX_HEALTH if mode == ReviveMode.FULL else STANDARD_REVIVE_HEALTH
            target.status = ParticipantStatus.ALIVE
            if target_id not in state.arena.locations:
                state.arena.locations[target_id] = rng.choice(LOCATION_ORDER)
            affected.append(target)
        where = state.arena.locations.get(target_id, Location.CORNUCOPIA)
        self._record(
            state, outcome, "god-revive-tribute", EventType.SURPRISE, where, affected, [], f"{mode.value} revival"
        )

    def _set_relationship(
        self,
        state: StoredMatch,
        by_id: dict[str, Participant],
        source_id: str,
        target_id: str,
        relation: Relation | None,
        outcome: GodModeOutcome,
    ) -> None:
        found = [by_id[pid] for pid in (source_id, target_id) if pid in by_id]
        graph = state.arena.relationships
        if len(found) == 2 and source_id != target_id:
            for a, b in ((source_id, target_id), (target_id, source_id)):
                if relation is None:
                    edges = graph.get(a)
                    if edges is not None:
                        edges.pop(b, None)
                        if not edges:
                            del graph[a]
                else:
                    graph.setdefault(a, {})[b] = relation
        where = (state.arena.locations.get(found[0].id) if found else None) or Location.CORNUCOPIA
        detail = "relationship cleared" if relation is None else f"now {relation.value}"
        event_type = EventType.ALLIANCE if relation is None else EventType.BETRAYAL
        self._record(state, outcome, "god-set-relationship", event_type, where, found, [], detail)

    def _record(
        self,
        state: StoredMatch,
        outcome: GodModeOutcome,
        template_id: str,
        event_type: EventType,
        location: Location,
        affected: list[Participant],
        eliminated: list[str],
        detail: str,
    ) -> None:
        phase: CyclePhase = state.match.cycle_phase
        lethal = bool(eliminated)
        intensity = round(state.match.tension_level + 20 + (20 if lethal else 0))
        outcome.events.append(
            EventRecord(
                id=make_id("event"),
                match_id=state.match.id,
                template_id=template_id,
                turn_number=state.match.turn_number + 1,
                type=event_type,
                source_type=SourceType.GOD_MODE,
                phase=phase,
                location=location,
                participant_ids=[p.id for p in affected],
                participant_count=len(affected),
                intensity=max(0, min(100, intensity)),
                narrative_text=build_god_mode_narrative(
                    template_id, location, [p.display_name for p in affected], detail
                ),
                lethal=lethal,
                created_at=now_utc(),
            )
        )
        outcome.eliminated_ids.extend(eliminated)
