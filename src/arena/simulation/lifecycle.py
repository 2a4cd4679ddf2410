from __future__ import annotations

import copy
import time
from collections import deque
from typing import Any, Callable, Mapping, Sequence

from arena.contracts import (
    GOD_MODE_PHASE,
    AdvanceTurnResponse,
    ArenaState,
    CreateMatchResponse,
    CyclePhase,
    EngineResult,
    ErrorCode,
    EventRecord,
    EventSummary,
    EventTemplate,
    EventType,
    GodModeAction,
    GodModeQueueResponse,
    GodModeView,
    Location,
    Match,
    MatchPhase,
    MatchSettings,
    MatchStateView,
    Participant,
    SourceType,
    StartMatchResponse,
    StoredMatch,
    TurnLedgerEntry,
    ValidationIssue,
    action_issues,
)
from arena.core import (
    PHASE_BASE_ELIMINATION,
    RULESET_VERSION,
    SNAPSHOT_VERSION,
    EngineConfig,
    EventBus,
    LatencyRecorder,
    default_engine_config,
    emit_structured_log,
    make_id,
    now_utc,
    stable_checksum,
    turn_random,
)
from arena.persistence import (
    InMemoryMatchStore,
    MatchStore,
    SnapshotError,
    build_snapshot_envelope,
    verify_snapshot_envelope,
)
from arena.simulation.catalog import build_contextual_turn_catalog, select_event
from arena.simulation.director import DirectorState, advance_director
from arena.simulation.god_mode import LOCATION_ORDER, GodModeApplier, GodModeOutcome, find_enemy_pairs, set_health
from arena.simulation.narrative import build_event_narrative
from arena.simulation.sampler import choose_participants, sample_participant_count
from arena.simulation.special_events import resolve_special_event

CatalogBuilder = Callable[[int, int], list[EventTemplate]]

GOD_MODE_PLACEHOLDER_TEMPLATE = "god-mode-resolution"


def _alive(participants: Sequence[Participant]) -> list[Participant]:
    return [p for p in participants if p.is_alive]


def _winner_id(participants: Sequence[Participant]) -> str | None:
    alive = _alive(participants)
    return alive[0].id if len(alive) == 1 else None


def replay_signature(
    ruleset_version: str,
    seed: str | None,
    turn_number: int,
    cycle_phase: CyclePhase,
    template_id: str,
    location: Location,
    participant_character_ids: Sequence[str],
    eliminated_character_ids: Sequence[str],
) -> str:
    return stable_checksum(
        {
            "ruleset_version": ruleset_version,
            "seed": seed,
            "turn_number": turn_number,
            "cycle_phase": cycle_phase,
            "template_id": template_id,
            "location": location,
            "participant_character_ids": list(participant_character_ids),
            "eliminated_character_ids": list(eliminated_character_ids),
        }
    )


def event_location_fallback(seed_key: str, turn_number: int, phase: CyclePhase, template_id: str) -> Location:
    digest = stable_checksum(
        {"seed_key": seed_key, "turn_number": turn_number, "phase": phase, "template_id": template_id}
    )
    return LOCATION_ORDER[int(digest[:8], 16) % len(LOCATION_ORDER)]


class MatchEngine:
    def __init__(
        self,
        store: MatchStore | None = None,
        config: EngineConfig | None = None,
        event_bus: EventBus | None = None,
        latency: LatencyRecorder | None = None,
        catalog_builder: CatalogBuilder = build_contextual_turn_catalog,
    ) -> None:
        self.config = config or default_engine_config()
        self.config.validate()
        self.store: MatchStore = store if store is not None else InMemoryMatchStore()
        self.event_bus = event_bus or EventBus()
        self.latency = latency or LatencyRecorder()
        self.catalog_builder = catalog_builder
        self.god_mode = GodModeApplier()

    def create_match(
        self,
        roster_ids: Sequence[str],
        participant_names: Sequence[str] | None = None,
        settings: MatchSettings | None = None,
    ) -> EngineResult[CreateMatchResponse]:
        cfg = self.config
        issues: list[ValidationIssue] = []
        if not cfg.min_roster_size <= len(roster_ids) <= cfg.max_roster_size:
            issues.append(
                ValidationIssue(
                    "ROSTER_SIZE",
                    "blocking",
                    "roster_character_ids",
                    "",
                    f"roster must hold {cfg.min_roster_size}..{cfg.max_roster_size} participants",
                )
            )
        if len(set(roster_ids)) != len(roster_ids):
            issues.append(ValidationIssue("ROSTER_DUPLICATE", "blocking", "roster_character_ids", "", "ids must be unique"))
        if issues:
            return EngineResult.failure(ErrorCode.VALIDATION_FAILED, "invalid roster", issues)

        settings = copy.copy(settings) if settings is not None else MatchSettings()
        if settings.seed is not None and not settings.seed.strip():
            settings.seed = None
        names = list(participant_names or [])
        match_id = make_id("match")
        participants = [
            Participant(
                id=make_id("tribute"),
                match_id=match_id,
                character_id=character_id,
                display_name=(names[i] if i < len(names) and names[i] else character_id),
            )
            for i, character_id in enumerate(roster_ids)
        ]
        arena = ArenaState(
            locations={p.id: LOCATION_ORDER[i % len(LOCATION_ORDER)] for i, p in enumerate(participants)}
        )
        stored = StoredMatch(
            match=Match(
                id=match_id,
                seed=settings.seed,
                ruleset_version=RULESET_VERSION,
                phase=MatchPhase.SETUP,
                cycle_phase=CyclePhase.BLOODBATH,
                turn_number=0,
                tension_level=0.0,
                created_at=now_utc(),
            ),
            settings=settings,
            participants=participants,
            recent_events=deque(maxlen=cfg.max_recent_events),
            arena=arena,
        )
        self.store.put(stored)
        emit_structured_log(
            "match.created",
            match_id=match_id,
            phase=MatchPhase.SETUP.value,
            roster_size=len(participants),
            seed=settings.seed,
            ruleset_version=RULESET_VERSION,
            snapshot_version=SNAPSHOT_VERSION,
        )
        return EngineResult.success(CreateMatchResponse(match_id=match_id))

    def start_match(self, match_id: str) -> EngineResult[StartMatchResponse]:
        stored = self.store.get(match_id)
        if stored is None:
            emit_structured_log("match.start.rejected", match_id=match_id, reason=ErrorCode.MATCH_NOT_FOUND.value)
            return EngineResult.failure(ErrorCode.MATCH_NOT_FOUND, "Match not found.")
        if stored.match.phase != MatchPhase.SETUP:
            emit_structured_log(
                "match.start.rejected",
                match_id=match_id,
                reason=ErrorCode.MATCH_STATE_CONFLICT.value,
                phase=stored.match.phase.value,
            )
            return EngineResult.failure(
                ErrorCode.MATCH_STATE_CONFLICT, f"Match cannot start from phase '{stored.match.phase.value}'."
            )

        stored.match.phase = MatchPhase.RUNNING
        stored.match.cycle_phase = CyclePhase.BLOODBATH
        stored.match.turn_number = 0
        self.store.put(stored)
        emit_structured_log(
            "match.started",
            match_id=match_id,
            phase=MatchPhase.RUNNING.value,
            cycle_phase=CyclePhase.BLOODBATH.value,
            turn_number=0,
            seed=stored.match.seed,
            ruleset_version=stored.match.ruleset_version,
        )
        return EngineResult.success(
            StartMatchResponse(
                match_id=match_id, phase=MatchPhase.RUNNING, cycle_phase=CyclePhase.BLOODBATH, turn_number=0
            )
        )

    def queue_god_mode_actions(
        self, match_id: str, actions: Sequence[GodModeAction]
    ) -> EngineResult[GodModeQueueResponse]:
        cfg = self.config
        if not 1 <= len(actions) <= cfg.max_actions_per_request:
            emit_structured_log("match.god_mode.rejected", match_id=match_id, reason=ErrorCode.VALIDATION_FAILED.value)
            return EngineResult.failure(
                ErrorCode.VALIDATION_FAILED,
                f"between 1 and {cfg.max_actions_per_request} actions are required",
                [
                    ValidationIssue(
                        "ACTION_COUNT", "blocking", "actions", "", f"received {len(actions)} actions"
                    )
                ],
            )
        issues = [issue for i, a in enumerate(actions) for issue in action_issues(a, f"actions[{i}]")]
        if issues:
            emit_structured_log(
                "match.god_mode.rejected",
                match_id=match_id,
                reason=ErrorCode.VALIDATION_FAILED.value,
                issues=[i.field_path for i in issues],
            )
            return EngineResult.failure(ErrorCode.VALIDATION_FAILED, "god-mode actions failed validation", issues)
        stored = self.store.get(match_id)
        if stored is None:
            emit_structured_log("match.god_mode.rejected", match_id=match_id, reason=ErrorCode.MATCH_NOT_FOUND.value)
            return EngineResult.failure(ErrorCode.MATCH_NOT_FOUND, "Match not found.")
        if stored.match.phase != MatchPhase.RUNNING:
            emit_structured_log(
                "match.god_mode.rejected",
                match_id=match_id,
                reason=ErrorCode.MATCH_STATE_CONFLICT.value,
                phase=stored.match.phase.value,
            )
            return EngineResult.failure(
                ErrorCode.MATCH_STATE_CONFLICT,
                f"God mode is unavailable in phase '{stored.match.phase.value}'.",
            )

        pending = stored.arena.pending_actions
        capacity = max(0, cfg.max_pending_actions - len(pending))
        accepted = list(actions[:capacity])
        pending.extend(accepted)
        self.store.put(stored)
        emit_structured_log(
            "match.god_mode.queued",
            match_id=match_id,
            requested=len(actions),
            accepted=len(accepted),
            pending=len(pending),
            kinds=[a.kind for a in accepted],
        )
        return EngineResult.success(
            GodModeQueueResponse(match_id=match_id, accepted_actions=len(accepted), pending_actions=len(pending))
        )

    def advance_turn(self, match_id: str) -> EngineResult[AdvanceTurnResponse]:
        started = time.perf_counter()
        stored = self.store.get(match_id)
        if stored is None:
            emit_structured_log("match.turn.rejected", match_id=match_id, reason=ErrorCode.MATCH_NOT_FOUND.value)
            return EngineResult.failure(ErrorCode.MATCH_NOT_FOUND, "Match not found.")
        if stored.match.phase != MatchPhase.RUNNING:
            emit_structured_log(
                "match.turn.rejected",
                match_id=match_id,
                reason=ErrorCode.MATCH_STATE_CONFLICT.value,
                phase=stored.match.phase.value,
            )
            return EngineResult.failure(
                ErrorCode.MATCH_STATE_CONFLICT, f"Match cannot advance from phase '{stored.match.phase.value}'."
            )
        if len(_alive(stored.participants)) <= 1:
            emit_structured_log("match.turn.rejected", match_id=match_id, reason="MATCH_ALREADY_RESOLVED")
            return EngineResult.failure(ErrorCode.MATCH_STATE_CONFLICT, "Match is already resolved.")

        working = copy.deepcopy(stored)
        match = working.match
        turn_number = match.turn_number + 1
        rng = turn_random(match.seed or match.id, turn_number)

        god = self.god_mode.apply(working, rng.spawn("god_mode"))
        working.recent_events.extend(god.events)
        alive = _alive(working.participants)
        if len(alive) <= 1:
            return self._finish_by_god_mode(working, god, started)

        cfg = self.config
        by_id = {p.id: p for p in working.participants}
        selected = choose_participants(alive, sample_participant_count(len(alive), rng), rng)
        enemy_pairs = find_enemy_pairs(working.arena, [p.id for p in alive])
        if enemy_pairs and rng() < cfg.enemy_bias_chance:
            a_id, b_id = enemy_pairs[rng.pick_index(len(enemy_pairs))]
            selected = [by_id[a_id], by_id[b_id]]

        natural_history = [e.template_id for e in working.recent_events if e.source_type == SourceType.NATURAL]
        history = natural_history[-cfg.history_window :]
        catalog = self.catalog_builder(turn_number, len(alive))
        phase = match.cycle_phase
        template = select_event(catalog, phase, history, rng, cfg.repeat_cap)

        chance = self._elimination_chance(phase, match.tension_level, len(alive))
        if find_enemy_pairs(working.arena, [p.id for p in selected]):
            chance = min(cfg.max_elimination_chance, chance + cfg.enemy_elimination_bonus)
        forced = len(alive) == 2
        roll = 0.0 if forced else rng()

        special = resolve_special_event(phase, template.id, selected, rng)
        if special.elimination_chance_floor is not None:
            chance = max(chance, special.elimination_chance_floor)
        eliminated_ids: list[str] = []
        if special.handled and not special.allow_default_elimination:
            eliminated_ids.extend(special.eliminated_ids)
        elif forced or roll < chance:
            eliminated_ids.append(selected[rng.pick_index(len(selected))].id)

        for pid in eliminated_ids:
            set_health(by_id[pid], 0)
        for participant in selected:
            if participant.id not in eliminated_ids:
                participant.streak_score += 1

        survivors = len(_alive(working.participants))
        director = advance_director(
            DirectorState(match.turn_number, phase, len(alive), match.tension_level),
            bool(eliminated_ids),
            survivors,
        )

        selected_locations = {working.arena.locations.get(p.id) for p in selected}
        if len(selected_locations) == 1 and None not in selected_locations:
            location = selected_locations.pop()
        else:
            location = event_location_fallback(match.seed or match.id, turn_number, phase, template.id)

        lethal = bool(eliminated_ids)
        created_at = now_utc()
        event = EventRecord(
            id=make_id("event"),
            match_id=match.id,
            template_id=template.id,
            turn_number=turn_number,
            type=template.type,
            source_type=SourceType.NATURAL,
            phase=phase,
            location=location,
            participant_ids=[p.id for p in selected],
            participant_count=len(selected),
            intensity=max(0, min(100, round(match.tension_level + 15 + rng() * 40 + (20 if lethal else 0)))),
            narrative_text=build_event_narrative(
                template.id,
                phase,
                location,
                [p.display_name for p in selected],
                [by_id[pid].display_name for pid in eliminated_ids],
                special.narrative,
            ),
            lethal=lethal,
            created_at=created_at,
        )
        working.recent_events.append(event)

        match.turn_number = director.turn_number
        match.cycle_phase = director.cycle_phase
        match.tension_level = director.tension_level
        winner_id = _winner_id(working.participants)
        if winner_id is not None:
            match.phase = MatchPhase.FINISHED
            match.ended_at = created_at

        signature = replay_signature(
            match.ruleset_version,
            match.seed,
            turn_number,
            phase,
            template.id,
            location,
            [p.character_id for p in selected],
            [by_id[pid].character_id for pid in eliminated_ids],
        )
        working.ledger.append(
            TurnLedgerEntry(
                turn_number=turn_number,
                cycle_phase=phase,
                template_id=template.id,
                source_type=SourceType.NATURAL,
                participant_ids=[p.id for p in selected],
                eliminated_ids=list(eliminated_ids),
                tension_level=match.tension_level,
                survivors_count=survivors,
                replay_signature=signature,
                god_mode_events=len(god.events),
            )
        )

        self.store.put(working)
        for record in (*god.events, event):
            self.event_bus.publish(record)
        self._log_turn(working, event, len(selected), len(eliminated_ids), winner_id, signature, started)
        return EngineResult.success(
            AdvanceTurnResponse(
                turn_number=match.turn_number,
                cycle_phase=match.cycle_phase,
                tension_level=match.tension_level,
                event=EventSummary.from_record(event),
                survivors_count=survivors,
                eliminated_ids=eliminated_ids,
                finished=winner_id is not None,
                winner_id=winner_id,
            )
        )

    def _finish_by_god_mode(
        self, working: StoredMatch, god: GodModeOutcome, started: float
    ) -> EngineResult[AdvanceTurnResponse]:
        match = working.match
        turn_number = match.turn_number + 1
        survivors = len(_alive(working.participants))
        if god.events:
            event = god.events[-1]
        else:
            event = EventRecord(
                id=make_id("event"),
                match_id=match.id,
                template_id=GOD_MODE_PLACEHOLDER_TEMPLATE,
                turn_number=turn_number,
                type=EventType.HAZARD,
                source_type=SourceType.GOD_MODE,
                phase=match.cycle_phase,
                location=Location.CORNUCOPIA,
                participant_ids=[],
                participant_count=0,
                intensity=100,
                narrative_text="The Gamemakers end the match.",
                lethal=True,
                created_at=now_utc(),
            )
        phase = match.cycle_phase
        director = advance_director(
            DirectorState(match.turn_number, phase, survivors, match.tension_level),
            bool(god.eliminated_ids),
            survivors,
        )
        match.turn_number = director.turn_number
        match.cycle_phase = director.cycle_phase
        match.tension_level = director.tension_level
        match.phase = MatchPhase.FINISHED
        match.ended_at = event.created_at
        winner_id = _winner_id(working.participants)

        by_id = {p.id: p for p in working.participants}
        signature = replay_signature(
            match.ruleset_version,
            match.seed,
            turn_number,
            phase,
            event.template_id,
            event.location,
            [by_id[pid].character_id for pid in event.participant_ids if pid in by_id],
            [],
        )
        working.ledger.append(
            TurnLedgerEntry(
                turn_number=turn_number,
                cycle_phase=phase,
                template_id=event.template_id,
                source_type=SourceType.GOD_MODE,
                participant_ids=list(event.participant_ids),
                eliminated_ids=[],
                tension_level=match.tension_level,
                survivors_count=survivors,
                replay_signature=signature,
                god_mode_events=len(god.events),
            )
        )
        self.store.put(working)
        for record in god.events:
            self.event_bus.publish(record)
        self._log_turn(working, event, event.participant_count, 0, winner_id, signature, started)
        return EngineResult.success(
            AdvanceTurnResponse(
                turn_number=match.turn_number,
                cycle_phase=match.cycle_phase,
                tension_level=match.tension_level,
                event=EventSummary.from_record(event),
                survivors_count=survivors,
                eliminated_ids=[],
                finished=True,
                winner_id=winner_id,
            )
        )

    def _elimination_chance(self, phase: CyclePhase, tension_level: float, alive_count: int) -> float:
        cfg = self.config
        chance = PHASE_BASE_ELIMINATION[phase] + tension_level / 300
        if alive_count <= cfg.endgame_alive_threshold:
            chance += cfg.endgame_bonus
        return min(cfg.max_elimination_chance, max(0.0, chance))

    def _log_turn(
        self,
        working: StoredMatch,
        event: EventRecord,
        participant_count: int,
        eliminated_count: int,
        winner_id: str | None,
        signature: str,
        started: float,
    ) -> None:
        match = working.match
        finished = match.phase == MatchPhase.FINISHED
        emit_structured_log(
            "match.turn.event",
            match_id=match.id,
            turn_number=match.turn_number,
            cycle_phase=match.cycle_phase.value,
            event_type=event.type.value,
            source_type=event.source_type.value,
            template_id=event.template_id,
            location=event.location.value,
            participant_count=participant_count,
            eliminated_count=eliminated_count,
            finished=finished,
            winner_id=winner_id,
            ruleset_version=match.ruleset_version,
            snapshot_version=SNAPSHOT_VERSION,
            seed=match.seed,
            replay_signature=signature,
        )
        if finished:
            emit_structured_log(
                "match.finished",
                match_id=match.id,
                turn_number=match.turn_number,
                winner_id=winner_id,
                ended_at=match.ended_at.isoformat() if match.ended_at else None,
            )
        self.latency.record(
            "simulation.tick", (time.perf_counter() - started) * 1000, {"operation": "advance_turn"}
        )

    def get_match_state(self, match_id: str) -> MatchStateView | None:
        stored = self.store.get(match_id)
        if stored is None:
            return None
        return self._view(stored)

    def _view(self, stored: StoredMatch) -> MatchStateView:
        view = copy.deepcopy(stored)
        match = view.match
        pending = view.arena.pending_actions
        return MatchStateView(
            match_id=match.id,
            phase=match.phase,
            cycle_phase=match.cycle_phase,
            turn_number=match.turn_number,
            tension_level=match.tension_level,
            settings=view.settings,
            participants=view.participants,
            recent_events=list(view.recent_events),
            locations=view.arena.locations,
            relationships=view.arena.relationships,
            active_fires=view.arena.active_fires,
            god_mode=GodModeView(
                phase=GOD_MODE_PHASE if pending else match.cycle_phase.value,
                pending_actions=pending,
            ),
            winner_id=_winner_id(view.participants) if match.phase == MatchPhase.FINISHED else None,
            ended_at=match.ended_at,
        )

    def export_snapshot(self, match_id: str) -> EngineResult[dict[str, Any]]:
        stored = self.store.get(match_id)
        if stored is None:
            return EngineResult.failure(ErrorCode.MATCH_NOT_FOUND, "Match not found.")
        return EngineResult.success(build_snapshot_envelope(stored))

    def resume_match(self, envelope: Mapping[str, Any] | str) -> EngineResult[MatchStateView]:
        try:
            stored = verify_snapshot_envelope(envelope, self.config.max_recent_events)
        except SnapshotError as exc:
            emit_structured_log("snapshot.resume", accepted=False, reason=exc.code.value)
            return EngineResult.failure(exc.code, str(exc), exc.issues)
        self.store.put(stored)
        emit_structured_log(
            "snapshot.resume",
            accepted=True,
            match_id=stored.match.id,
            phase=stored.match.phase.value,
            turn_number=stored.match.turn_number,
        )
        return EngineResult.success(self._view(stored))

    def turn_ledger(self, match_id: str) -> list[TurnLedgerEntry] | None:
        stored = self.store.get(match_id)
        if stored is None:
            return None
        return copy.deepcopy(stored.ledger)

    def delete_match(self, match_id: str) -> bool:
        return self.store.delete(match_id)
