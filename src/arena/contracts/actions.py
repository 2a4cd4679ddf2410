from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, TypeVar

from .types import (
    ForceEncounterAction,
    GlobalEventAction,
    GlobalEventKind,
    GodModeAction,
    LocalizedFireAction,
    Location,
    Relation,
    ResourceAdjustmentAction,
    ReviveMode,
    ReviveTributeAction,
    SeparateTributesAction,
    SetRelationshipAction,
    ValidationError,
    ValidationIssue,
)

MAX_FIRE_PERSISTENCE = 5
MAX_HEALTH_DELTA = 100

ACTION_KINDS: dict[str, type] = {
    cls.kind: cls
    for cls in (
        GlobalEventAction,
        LocalizedFireAction,
        ForceEncounterAction,
        SeparateTributesAction,
        ResourceAdjustmentAction,
        ReviveTributeAction,
        SetRelationshipAction,
    )
}

E = TypeVar("E", bound=Enum)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _in_range(value: Any, low: int, high: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and low <= value <= high


def action_issues(action: GodModeAction, field_path: str = "action") -> list[ValidationIssue]:
    """Every bound a queued action must satisfy, for decoded and typed actions alike."""
    issues: list[ValidationIssue] = []

    def issue(code: str, key: str, message: str) -> None:
        issues.append(ValidationIssue(code, "blocking", f"{field_path}.{key}", action.kind, message))

    def require_text(*keys: str) -> None:
        for key in keys:
            if not _is_text(getattr(action, key)):
                issue("REQUIRED_TEXT", key, "expected a non-empty string")

    if isinstance(action, LocalizedFireAction):
        if not _in_range(action.persistence_turns, 1, MAX_FIRE_PERSISTENCE):
            issue("OUT_OF_RANGE", "persistence_turns", f"expected an integer in [1, {MAX_FIRE_PERSISTENCE}]")
    elif isinstance(action, ForceEncounterAction):
        require_text("tribute_a_id", "tribute_b_id")
    elif isinstance(action, SeparateTributesAction):
        ids = action.tribute_ids
        if not isinstance(ids, tuple) or not ids or not all(_is_text(i) for i in ids):
            issue("INVALID_IDS", "tribute_ids", "expected a non-empty list of ids")
    elif isinstance(action, ResourceAdjustmentAction):
        require_text("target_id")
        if not _in_range(action.delta, -MAX_HEALTH_DELTA, MAX_HEALTH_DELTA):
            issue("OUT_OF_RANGE", "delta", f"expected an integer in [-{MAX_HEALTH_DELTA}, {MAX_HEALTH_DELTA}]")
        if action.resource != "health":
            issue("UNSUPPORTED_RESOURCE", "resource", "only 'health' can be adjusted")
    elif isinstance(action, ReviveTributeAction):
        require_text("target_id")
    elif isinstance(action, SetRelationshipAction):
        require_text("source_id", "target_id")
    return issues


class _ActionReader:
    def __init__(self, raw: Mapping[str, Any], field_path: str) -> None:
        self.raw = raw
        self.field_path = field_path
        self.issues: list[ValidationIssue] = []

    def issue(self, code: str, key: str, message: str) -> None:
        self.issues.append(ValidationIssue(code, "blocking", f"{self.field_path}.{key}", str(self.raw.get("kind", "")), message))

    def enum(self, key: str, enum_type: type[E], default: E | None = None, required: bool = True) -> E | None:
        value = self.raw.get(key)
        if value is None and not required:
            return default
        try:
            return enum_type(value)
        except ValueError:
            allowed = ", ".join(str(m.value) for m in enum_type)
            self.issue("INVALID_ENUM", key, f"expected one of: {allowed}")
            return default


def action_from_plain(raw: Any, field_path: str = "action") -> GodModeAction:
    """Decode one tagged god-mode action; raises ValidationError listing every problem found."""
    if not isinstance(raw, Mapping):
        raise ValidationError([ValidationIssue("INVALID_ACTION", "blocking", field_path, "", "action must be an object")])
    kind = raw.get("kind")
    if not isinstance(kind, str) or kind not in ACTION_KINDS:
        allowed = ", ".join(sorted(ACTION_KINDS))
        raise ValidationError(
            [ValidationIssue("UNKNOWN_ACTION_KIND", "blocking", f"{field_path}.kind", str(kind), f"expected one of: {allowed}")]
        )

    r = _ActionReader(raw, field_path)
    get = raw.get
    action: GodModeAction
    if kind == GlobalEventAction.kind:
        action = GlobalEventAction(event=r.enum("event", GlobalEventKind, GlobalEventKind.EXTREME_WEATHER))
    elif kind == LocalizedFireAction.kind:
        action = LocalizedFireAction(
            location=r.enum("location", Location, Location.CORNUCOPIA),
            persistence_turns=get("persistence_turns", 1),
        )
    elif kind == ForceEncounterAction.kind:
        action = ForceEncounterAction(
            tribute_a_id=get("tribute_a_id"),
            tribute_b_id=get("tribute_b_id"),
            location=r.enum("location", Location, required=False),
        )
    elif kind == SeparateTributesAction.kind:
        ids = get("tribute_ids")
        action = SeparateTributesAction(tribute_ids=tuple(ids) if isinstance(ids, list) else ids)
    elif kind == ResourceAdjustmentAction.kind:
        action = ResourceAdjustmentAction(
            target_id=get("target_id"), delta=get("delta"), resource=get("resource", "health")
        )
    elif kind == ReviveTributeAction.kind:
        action = ReviveTributeAction(
            target_id=get("target_id"),
            revive_mode=r.enum("revive_mode", ReviveMode, ReviveMode.STANDARD, required=False),
        )
    else:
        action = SetRelationshipAction(
            source_id=get("source_id"),
            target_id=get("target_id"),
            relation=r.enum("relation", Relation, None, required=False) if "relation" in raw else Relation.ENEMY,
        )

    issues = r.issues + action_issues(action, field_path)
    if issues:
        raise ValidationError(issues)
    return action
