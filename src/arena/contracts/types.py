from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Generic, Mapping, Protocol, Sequence, TypeVar, Union


class MatchPhase(str, Enum):
    SETUP = "setup"
    RUNNING = "running"
    FINISHED = "finished"


class CyclePhase(str, Enum):
    BLOODBATH = "bloodbath"
    DAY = "day"
    NIGHT = "night"
    FINALE = "finale"


GOD_MODE_PHASE = "god_mode"


class ParticipantStatus(str, Enum):
    ALIVE = "alive"
    INJURED = "injured"
    ELIMINATED = "eliminated"


class EventType(str, Enum):
    COMBAT = "combat"
    ALLIANCE = "alliance"
    BETRAYAL = "betrayal"
    RESOURCE = "resource"
    HAZARD = "hazard"
    SURPRISE = "surprise"


class SourceType(str, Enum):
    NATURAL = "natural"
    GOD_MODE = "god_mode"


class Location(str, Enum):
    CORNUCOPIA = "cornucopia"
    FOREST = "forest"
    RIVER = "river"
    LAKE = "lake"
    MEADOW = "meadow"
    CAVES = "caves"
    RUINS = "ruins"
    CLIFFS = "cliffs"


class Relation(str, Enum):
    ENEMY = "enemy"


class SurpriseLevel(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class EventProfile(str, Enum):
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"
    CHAOTIC = "chaotic"


class SimulationSpeed(str, Enum):
    X1 = "1x"
    X2 = "2x"
    X4 = "4x"


class GlobalEventKind(str, Enum):
    EXTREME_WEATHER = "extreme_weather"
    TOXIC_FOG = "toxic_fog"
    CORNUCOPIA_RESUPPLY = "cornucopia_resupply"


class ReviveMode(str, Enum):
    STANDARD = "standard"
    FULL = "full"


class ActionType(str, Enum):
    CREATE_MATCH = "create_match"
    START_MATCH = "start_match"
    QUEUE_GOD_MODE = "queue_god_mode"
    ADVANCE_TURN = "advance_turn"
    GET_MATCH_STATE = "get_match_state"
    EXPORT_SNAPSHOT = "export_snapshot"
    RESUME_MATCH = "resume_match"
    EXPORT_ARCHIVE = "export_archive"


class ErrorCode(str, Enum):
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    MATCH_STATE_CONFLICT = "MATCH_STATE_CONFLICT"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_JSON = "INVALID_JSON"
    SNAPSHOT_VERSION_UNSUPPORTED = "SNAPSHOT_VERSION_UNSUPPORTED"
    SNAPSHOT_INVALID = "SNAPSHOT_INVALID"
    UNSUPPORTED_ACTION = "UNSUPPORTED_ACTION"
    RUNTIME_HALTED = "RUNTIME_HALTED"


class RandomSource(Protocol):
    def __call__(self) -> float: ...

    def rand(self) -> float: ...

    def randint(self, a: int, b: int) -> int: ...

    def pick_index(self, length: int) -> int: ...

    def choice(self, items: Sequence[Any]) -> Any: ...

    def shuffle(self, items: list[Any]) -> None: ...

    def spawn(self, substream_id: str) -> RandomSource: ...


@dataclass(slots=True)
class MatchSettings:
    surprise_level: SurpriseLevel = SurpriseLevel.NORMAL
    event_profile: EventProfile = EventProfile.BALANCED
    simulation_speed: SimulationSpeed = SimulationSpeed.X1
    seed: str | None = None


@dataclass(slots=True)
class Match:
    id: str
    seed: str | None
    ruleset_version: str
    phase: MatchPhase
    cycle_phase: CyclePhase
    turn_number: int
    tension_level: float
    created_at: datetime
    ended_at: datetime | None = None


@dataclass(slots=True)
class Participant:
    id: str
    match_id: str
    character_id: str
    display_name: str
    current_health: int = 100
    status: ParticipantStatus = ParticipantStatus.ALIVE
    streak_score: int = 0

    @property
    def is_alive(self) -> bool:
        return self.status != ParticipantStatus.ELIMINATED


@dataclass(frozen=True, slots=True)
class EventTemplate:
    id: str
    type: EventType
    base_weight: float
    phases: tuple[CyclePhase, ...]


@dataclass(slots=True)
class EventRecord:
    id: str
    match_id: str
    template_id: str
    turn_number: int
    type: EventType
    source_type: SourceType
    phase: CyclePhase
    location: Location
    participant_ids: list[str]
    participant_count: int
    intensity: int
    narrative_text: str
    lethal: bool
    created_at: datetime


@dataclass(slots=True)
class EventSummary:
    id: str
    template_id: str
    type: EventType
    source_type: SourceType
    phase: CyclePhase
    location: Location
    narrative_text: str
    participant_ids: list[str]

    @classmethod
    def from_record(cls, record: EventRecord) -> EventSummary:
        return cls(
            id=record.id,
            template_id=record.template_id,
            type=record.type,
            source_type=record.source_type,
            phase=record.phase,
            location=record.location,
            narrative_text=record.narrative_text,
            participant_ids=list(record.participant_ids),
        )


@dataclass(frozen=True, slots=True)
class GlobalEventAction:
    kind: ClassVar[str] = "global_event"
    event: GlobalEventKind


@dataclass(frozen=True, slots=True)
class LocalizedFireAction:
    kind: ClassVar[str] = "localized_fire"
    location: Location
    persistence_turns: int = 1


@dataclass(frozen=True, slots=True)
class ForceEncounterAction:
    kind: ClassVar[str] = "force_encounter"
    tribute_a_id: str
    tribute_b_id: str
    location: Location | None = None


@dataclass(frozen=True, slots=True)
class SeparateTributesAction:
    kind: ClassVar[str] = "separate_tributes"
    tribute_ids: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ResourceAdjustmentAction:
    kind: ClassVar[str] = "resource_adjustment"
    target_id: str
    delta: int
    resource: str = "health"


@dataclass(frozen=True, slots=True)
class ReviveTributeAction:
    kind: ClassVar[str] = "revive_tribute"
    target_id: str
    revive_mode: ReviveMode = ReviveMode.STANDARD


@dataclass(frozen=True, slots=True)
class SetRelationshipAction:
    kind: ClassVar[str] = "set_relationship"
    source_id: str
    target_id: str
    relation: Relation | None = Relation.ENEMY


GodModeAction = Union[
    GlobalEventAction,
    LocalizedFireAction,
    ForceEncounterAction,
    SeparateTributesAction,
    ResourceAdjustmentAction,
    ReviveTributeAction,
    SetRelationshipAction,
]


@dataclass(slots=True)
class ArenaState:
    locations: dict[str, Location] = field(default_factory=dict)
    relationships: dict[str, dict[str, Relation]] = field(default_factory=dict)
    active_fires: dict[Location, int] = field(default_factory=dict)
    pending_actions: list[GodModeAction] = field(default_factory=list)


@dataclass(slots=True)
class TurnLedgerEntry:
    turn_number: int
    cycle_phase: CyclePhase
    template_id: str
    source_type: SourceType
    participant_ids: list[str]
    eliminated_ids: list[str]
    tension_level: float
    survivors_count: int
    replay_signature: str
    god_mode_events: int = 0


@dataclass(slots=True)
class StoredMatch:
    match: Match
    settings: MatchSettings
    participants: list[Participant]
    recent_events: deque[EventRecord]
    arena: ArenaState = field(default_factory=ArenaState)
    ledger: list[TurnLedgerEntry] = field(default_factory=list)


@dataclass(slots=True)
class CreateMatchResponse:
    match_id: str
    phase: MatchPhase = MatchPhase.SETUP


@dataclass(slots=True)
class StartMatchResponse:
    match_id: str
    phase: MatchPhase
    cycle_phase: CyclePhase
    turn_number: int


@dataclass(slots=True)
class GodModeQueueResponse:
    match_id: str
    accepted_actions: int
    pending_actions: int


@dataclass(slots=True)
class AdvanceTurnResponse:
    turn_number: int
    cycle_phase: CyclePhase
    tension_level: float
    event: EventSummary
    survivors_count: int
    eliminated_ids: list[str]
    finished: bool
    winner_id: str | None


@dataclass(slots=True)
class GodModeView:
    phase: str
    pending_actions: list[GodModeAction]


@dataclass(slots=True)
class MatchStateView:
    match_id: str
    phase: MatchPhase
    cycle_phase: CyclePhase
    turn_number: int
    tension_level: float
    settings: MatchSettings
    participants: list[Participant]
    recent_events: list[EventRecord]
    locations: dict[str, Location]
    relationships: dict[str, dict[str, Relation]]
    active_fires: dict[Location, int]
    god_mode: GodModeView
    winner_id: str | None
    ended_at: datetime | None


@dataclass(slots=True)
class ValidationIssue:
    code: str
    severity: str
    field_path: str
    entity_id: str
    message: str


class ValidationError(ValueError):
    def __init__(self, issues: list[ValidationIssue]) -> None:
        message = "; ".join(f"{i.code}:{i.field_path}:{i.message}" for i in issues)
        super().__init__(message)
        self.issues = issues


@dataclass(slots=True)
class EngineError:
    code: ErrorCode
    message: str
    issues: list[ValidationIssue] = field(default_factory=list)


T = TypeVar("T")


@dataclass(slots=True)
class EngineResult(Generic[T]):
    ok: bool
    value: T | None = None
    error: EngineError | None = None

    @classmethod
    def success(cls, value: T) -> EngineResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(
        cls, code: ErrorCode, message: str, issues: list[ValidationIssue] | None = None
    ) -> EngineResult[T]:
        return cls(ok=False, error=EngineError(code=code, message=message, issues=issues or []))


@dataclass(slots=True)
class ActionRequest:
    request_id: str
    action_type: ActionType | str
    payload: dict[str, Any]


@dataclass(slots=True)
class ActionResult:
    request_id: str
    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ForensicArtifact:
    artifact_id: str
    timestamp: datetime
    engine_scope: str
    error_code: str
    message: str
    state_snapshot: Mapping[str, Any]
    context: Mapping[str, Any]
    identifiers: Mapping[str, str]
    causal_fragment: Sequence[str]
