from .actions import ACTION_KINDS, action_from_plain, action_issues
from .types import (
    GOD_MODE_PHASE,
    ActionRequest,
    ActionResult,
    ActionType,
    AdvanceTurnResponse,
    ArenaState,
    CreateMatchResponse,
    CyclePhase,
    EngineError,
    EngineResult,
    ErrorCode,
    EventProfile,
    EventRecord,
    EventSummary,
    EventTemplate,
    EventType,
    ForceEncounterAction,
    ForensicArtifact,
    GlobalEventAction,
    GlobalEventKind,
    GodModeAction,
    GodModeQueueResponse,
    GodModeView,
    LocalizedFireAction,
    Location,
    Match,
    MatchPhase,
    MatchSettings,
    MatchStateView,
    Participant,
    ParticipantStatus,
    RandomSource,
    Relation,
    ResourceAdjustmentAction,
    ReviveMode,
    ReviveTributeAction,
    SeparateTributesAction,
    SetRelationshipAction,
    SimulationSpeed,
    SourceType,
    StartMatchResponse,
    SurpriseLevel,
    StoredMatch,
    TurnLedgerEntry,
    ValidationError,
    ValidationIssue,
)

__all__ = [
    "ACTION_KINDS",
    "GOD_MODE_PHASE",
    "ActionRequest",
    "ActionResult",
    "ActionType",
    "action_from_plain",
    "action_issues",
    "AdvanceTurnResponse",
    "ArenaState",
    "CreateMatchResponse",
    "CyclePhase",
    "EngineError",
    "EngineResult",
    "ErrorCode",
    "EventProfile",
    "EventRecord",
    "EventSummary",
    "EventTemplate",
    "EventType",
    "ForceEncounterAction",
    "ForensicArtifact",
    "GlobalEventAction",
    "GlobalEventKind",
    "GodModeAction",
    "GodModeQueueResponse",
    "GodModeView",
    "LocalizedFireAction",
    "Location",
    "Match",
    "MatchPhase",
    "MatchSettings",
    "MatchStateView",
    "Participant",
    "ParticipantStatus",
    "RandomSource",
    "Relation",
    "ResourceAdjustmentAction",
    "ReviveMode",
    "ReviveTributeAction",
    "SeparateTributesAction",
    "SetRelationshipAction",
    "SimulationSpeed",
    "SourceType",
    "StartMatchResponse",
    "SurpriseLevel",
    "StoredMatch",
    "TurnLedgerEntry",
    "ValidationError",
    "ValidationIssue",
]
