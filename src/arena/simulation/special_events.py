from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Sequence

from arena.contracts import CyclePhase, Participant
from arena.core import SPECIAL_EVENT_RULES


@dataclass(frozen=True, slots=True)
class PedestalNarrative:
    leaver_name: str
    exploded: bool


@dataclass(slots=True)
class SpecialEventResolution:
    handled: bool
    allow_default_elimination: bool = True
    eliminated_ids: list[str] = field(default_factory=list)
    elimination_chance_floor: float | None = None
    narrative: PedestalNarrative | None = None


def resolve_special_event(
    phase: CyclePhase,
    template_id: str,
    selected: Sequence[Participant],
    rng: Callable[[], float],
) -> SpecialEventResolution:
    rules = SPECIAL_EVENT_RULES
    if not selected:
        return SpecialEventResolution(handled=False)

    if phase == CyclePhase.BLOODBATH and template_id == rules.early_pedestal_escape.template_id:
        leaver = selected[0]
        exploded = rng() < rules.early_pedestal_escape.explosion_chance
        return SpecialEventResolution(
            handled=True,
            allow_default_elimination=False,
            eliminated_ids=[leaver.id] if exploded else [],
            narrative=PedestalNarrative(leaver_name=leaver.display_name, exploded=exploded),
        )

    if template_id == rules.cornucopia_refill.template_id:
        return SpecialEventResolution(
            handled=True,
            allow_default_elimination=True,
            elimination_chance_floor=rules.cornucopia_refill.elimination_chance_floor,
        )

    if template_id == rules.arena_escape_attempt.template_id:
        return SpecialEventResolution(
            handled=True,
            allow_default_elimination=False,
            eliminated_ids=[selected[0].id],
        )

    return SpecialEventResolution(handled=False)
