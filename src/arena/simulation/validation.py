from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from arena.contracts import (
    EventProfile,
    GodModeAction,
    MatchSettings,
    SimulationSpeed,
    SurpriseLevel,
    ValidationError,
    ValidationIssue,
    action_from_plain,
)
from arena.core import EngineConfig, default_engine_config


@dataclass(slots=True)
class CreateMatchRequest:
    roster_character_ids: list[str]
    participant_names: list[str] | None
    settings: MatchSettings


class RequestValidator:
    """Turns raw request payloads into typed engine inputs, collecting every issue before failing."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or default_engine_config()

    def parse_create_request(self, payload: Mapping[str, Any]) -> CreateMatchRequest:
        issues: list[ValidationIssue] = []
        roster = payload.get("roster_character_ids")
        if not isinstance(roster, list) or not all(isinstance(c, str) and c.strip() for c in roster):
            issues.append(
                ValidationIssue("INVALID_ROSTER", "blocking", "roster_character_ids", "", "expected a list of non-empty ids")
            )
            roster = []
        else:
            low, high = self.config.min_roster_size, self.config.max_roster_size
            if not low <= len(roster) <= high:
                issues.append(
                    ValidationIssue(
                        "ROSTER_SIZE", "blocking", "roster_character_ids", "", f"roster must hold {low}..{high} participants"
                    )
                )
            duplicates = sorted({c for c in roster if roster.count(c) > 1})
            for dup in duplicates:
                issues.append(ValidationIssue("ROSTER_DUPLICATE", "blocking", "roster_character_ids", dup, "duplicate id"))

        names = payload.get("participant_names")
        if names is not None:
            if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
                issues.append(ValidationIssue("INVALID_NAMES", "blocking", "participant_names", "", "expected a list of names"))
                names = None
            elif len(names) != len(roster):
                issues.append(
                    ValidationIssue(
                        "NAMES_LENGTH", "blocking", "participant_names", "", "participant_names must match the roster length"
                    )
                )

        settings = MatchSettings()
        try:
            settings = self.parse_settings(payload.get("settings") or {})
        except ValidationError as exc:
            issues.extend(exc.issues)

        if issues:
            raise ValidationError(issues)
        return CreateMatchRequest(roster_character_ids=list(roster), participant_names=names, settings=settings)

    def parse_settings(self, raw: Any) -> MatchSettings:
        if not isinstance(raw, Mapping):
            raise ValidationError([ValidationIssue("INVALID_SETTINGS", "blocking", "settings", "", "settings must be an object")])
        issues: list[ValidationIssue] = []
        defaults = MatchSettings()

        def pick(key: str, enum_type: type, default: Any) -> Any:
            if key not in raw:
                return default
            try:
                return enum_type(raw[key])
            except ValueError:
                allowed = ", ".join(m.value for m in enum_type)
                issues.append(ValidationIssue("INVALID_ENUM", "blocking", f"settings.{key}", "", f"expected one of: {allowed}"))
                return default

        surprise = pick("surprise_level", SurpriseLevel, defaults.surprise_level)
        profile = pick("event_profile", EventProfile, defaults.event_profile)
        speed = pick("simulation_speed", SimulationSpeed, defaults.simulation_speed)
        seed = raw.get("seed")
        if seed is not None and (not isinstance(seed, str) or not seed.strip()):
            issues.append(ValidationIssue("INVALID_SEED", "blocking", "settings.seed", "", "seed must be a non-empty string or null"))
            seed = None
        if issues:
            raise ValidationError(issues)
        return MatchSettings(surprise_level=surprise, event_profile=profile, simulation_speed=speed, seed=seed)

    def parse_god_mode_actions(self, payload: Mapping[str, Any]) -> list[GodModeAction]:
        raw_actions = payload.get("actions")
        limit = self.config.max_actions_per_request
        if not isinstance(raw_actions, list) or not 1 <= len(raw_actions) <= limit:
            raise ValidationError(
                [ValidationIssue("ACTION_COUNT", "blocking", "actions", "", f"expected a list of 1..{limit} actions")]
            )
        actions: list[GodModeAction] = []
        issues: list[ValidationIssue] = []
        for index, raw in enumerate(raw_actions):
            try:
                actions.append(action_from_plain(raw, f"actions[{index}]"))
            except ValidationError as exc:
                issues.extend(exc.issues)
        if issues:
            raise ValidationError(issues)
        return actions

    def require_match_id(self, payload: Mapping[str, Any]) -> str:
        match_id = payload.get("match_id")
        if not isinstance(match_id, str) or not match_id.strip():
            raise ValidationError([ValidationIssue("REQUIRED_TEXT", "blocking", "match_id", "", "match_id is required")])
        return match_id
