from __future__ import annotations

from dataclasses import dataclass, fields

from arena.contracts import CyclePhase

RULESET_VERSION = "v1.0.0"
SNAPSHOT_VERSION = 1

PHASE_BASE_ELIMINATION: dict[CyclePhase, float] = {
    CyclePhase.BLOODBATH: 0.34,
    CyclePhase.DAY: 0.22,
    CyclePhase.NIGHT: 0.28,
    CyclePhase.FINALE: 0.72,
}


@dataclass(frozen=True, slots=True)
class EarlyPedestalEscapeRule:
    template_id: str
    explosion_chance: float


@dataclass(frozen=True, slots=True)
class CornucopiaRefillRule:
    template_id: str
    min_turn_number: int
    max_alive_count: int
    activation_weight_multiplier: float
    elimination_chance_floor: float


@dataclass(frozen=True, slots=True)
class ArenaEscapeAttemptRule:
    template_id: str


@dataclass(frozen=True, slots=True)
class SpecialEventRules:
    version: str
    early_pedestal_escape: EarlyPedestalEscapeRule
    cornucopia_refill: CornucopiaRefillRule
    arena_escape_attempt: ArenaEscapeAttemptRule


SPECIAL_EVENT_RULES = SpecialEventRules(
    version=RULESET_VERSION,
    early_pedestal_escape=EarlyPedestalEscapeRule(
        template_id="hazard-pedestal-early-exit-1",
        explosion_chance=0.08,
    ),
    cornucopia_refill=CornucopiaRefillRule(
        template_id="resource-cornucopia-refill-1",
        min_turn_number=4,
        max_alive_count=12,
        activation_weight_multiplier=1.7,
        elimination_chance_floor=0.55,
    ),
    arena_escape_attempt=ArenaEscapeAttemptRule(template_id="hazard-arena-escape-attempt-1"),
)


@dataclass(slots=True)
class EngineConfig:
    max_recent_events: int = 12
    max_pending_actions: int = 6
    max_actions_per_request: int = 8
    history_window: int = 4
    repeat_cap: int = 2
    enemy_bias_chance: float = 0.65
    enemy_elimination_bonus: float = 0.2
    endgame_alive_threshold: int = 4
    endgame_bonus: float = 0.08
    max_elimination_chance: float = 0.95
    min_roster_size: int = 10
    max_roster_size: int = 48

    def validate(self) -> None:
        counts = [
            self.max_recent_events,
            self.max_pending_actions,
            self.max_actions_per_request,
            self.history_window,
            self.repeat_cap,
        ]
        if any(v <= 0 for v in counts):
            raise ValueError("engine limits must be positive")
        for name in ("enemy_bias_chance", "enemy_elimination_bonus", "endgame_bonus", "max_elimination_chance"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if not 2 <= self.min_roster_size <= self.max_roster_size:
            raise ValueError("roster bounds must satisfy 2 <= min <= max")


def default_engine_config() -> EngineConfig:
    return EngineConfig()


def engine_config_from_overrides(overrides: dict[str, object]) -> EngineConfig:
    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"unknown engine config keys: {', '.join(unknown)}")
    config = EngineConfig(**overrides)  # type: ignore[arg-type]
    config.validate()
    return config
