from __future__ import annotations

import math
from dataclasses import replace
from typing import Callable, Iterable, Sequence

from arena.contracts import CyclePhase, EventTemplate, EventType, ValidationIssue
from arena.core import SPECIAL_EVENT_RULES, CatalogConfigurationError, build_forensic_artifact

_ALL_BUT_FINALE = (CyclePhase.BLOODBATH, CyclePhase.DAY, CyclePhase.NIGHT)
_LATE_PHASES = (CyclePhase.DAY, CyclePhase.NIGHT, CyclePhase.FINALE)

TURN_EVENT_CATALOG: tuple[EventTemplate, ...] = (
    EventTemplate("combat-1", EventType.COMBAT, 10, _ALL_BUT_FINALE),
    EventTemplate("combat-2", EventType.COMBAT, 8, _ALL_BUT_FINALE),
    EventTemplate(
        SPECIAL_EVENT_RULES.early_pedestal_escape.template_id,
        EventType.HAZARD,
        3,
        (CyclePhase.BLOODBATH,),
    ),
    EventTemplate("alliance-1", EventType.ALLIANCE, 6, _LATE_PHASES),
    EventTemplate("betrayal-1", EventType.BETRAYAL, 7, _LATE_PHASES),
    EventTemplate("resource-1", EventType.RESOURCE, 5, (CyclePhase.DAY, CyclePhase.NIGHT)),
    EventTemplate("hazard-1", EventType.HAZARD, 6, (CyclePhase.BLOODBATH, CyclePhase.NIGHT, CyclePhase.FINALE)),
    EventTemplate("surprise-1", EventType.SURPRISE, 4, _LATE_PHASES),
)

CINEMATIC_EVENT_CATALOG: tuple[EventTemplate, ...] = (
    EventTemplate("hazard-toxic-fog-1", EventType.HAZARD, 4, _LATE_PHASES),
    EventTemplate("surprise-muttation-hunt-1", EventType.SURPRISE, 4, (CyclePhase.NIGHT, CyclePhase.FINALE)),
    EventTemplate(
        SPECIAL_EVENT_RULES.arena_escape_attempt.template_id,
        EventType.HAZARD,
        2,
        (CyclePhase.DAY, CyclePhase.NIGHT),
    ),
)

CORNUCOPIA_REFILL_TEMPLATE = EventTemplate(
    SPECIAL_EVENT_RULES.cornucopia_refill.template_id,
    EventType.RESOURCE,
    3,
    (CyclePhase.DAY, CyclePhase.NIGHT),
)


def is_cornucopia_refill_eligible(turn_number: int, alive_count: int) -> bool:
    rule = SPECIAL_EVENT_RULES.cornucopia_refill
    return turn_number >= rule.min_turn_number and alive_count <= rule.max_alive_count


def build_contextual_turn_catalog(turn_number: int, alive_count: int) -> list[EventTemplate]:
    catalog = [*TURN_EVENT_CATALOG, *CINEMATIC_EVENT_CATALOG]
    if is_cornucopia_refill_eligible(turn_number, alive_count):
        multiplier = SPECIAL_EVENT_RULES.cornucopia_refill.activation_weight_multiplier
        catalog.append(replace(CORNUCOPIA_REFILL_TEMPLATE, base_weight=CORNUCOPIA_REFILL_TEMPLATE.base_weight * multiplier))
    return catalog


def validate_catalog(templates: Iterable[EventTemplate]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    seen: set[str] = set()
    covered: set[CyclePhase] = set()
    for template in templates:
        if template.id in seen:
            issues.append(ValidationIssue("DUPLICATE_TEMPLATE", "blocking", "id", template.id, "template ids must be unique"))
        seen.add(template.id)
        if template.base_weight <= 0:
            issues.append(ValidationIssue("NON_POSITIVE_WEIGHT", "blocking", "base_weight", template.id, "base_weight must be positive"))
        if not template.phases:
            issues.append(ValidationIssue("NO_PHASES", "blocking", "phases", template.id, "template must list at least one phase"))
        covered.update(template.phases)
    for phase in CyclePhase:
        if phase not in covered:
            issues.append(
                ValidationIssue("PHASE_UNCOVERED", "blocking", "phases", phase.value, f"no template is eligible for {phase.value}")
            )
    return issues


def _roulette(weighted: Sequence[tuple[EventTemplate, float]], rng: Callable[[], float]) -> EventTemplate:
    total = sum(w for _, w in weighted)
    roll = rng() * total
    if not math.isfinite(roll):
        return weighted[-1][0]
    cumulative = 0.0
    for template, weight in weighted:
        cumulative += weight
        if roll < cumulative:
            return template
    return weighted[-1][0]


def select_event(
    templates: Sequence[EventTemplate],
    phase: CyclePhase,
    recent_template_ids: Sequence[str],
    rng: Callable[[], float],
    repeat_cap: int = 2,
) -> EventTemplate:
    candidates = [t for t in templates if phase in t.phases]
    if not candidates:
        raise CatalogConfigurationError(
            build_forensic_artifact(
                engine_scope="catalog",
                error_code="NO_ELIGIBLE_TEMPLATES",
                message=f"No event templates available for phase '{phase.value}'",
                state_snapshot={"phase": phase.value, "catalog_size": len(templates)},
                context={"template_ids": [t.id for t in templates]},
                identifiers={"phase": phase.value},
                causal_fragment=["event_selection", "phase_filter"],
            )
        )

    type_by_id = {t.id: t.type for t in templates}
    scored: list[tuple[EventTemplate, int, int, float]] = []
    for template in candidates:
        id_repeats = sum(1 for rid in recent_template_ids if rid == template.id)
        type_repeats = sum(1 for rid in recent_template_ids if type_by_id.get(rid) == template.type)
        if id_repeats >= repeat_cap or type_repeats >= repeat_cap:
            weight = 0.0
        else:
            weight = template.base_weight / ((1 + id_repeats * 2) * (1 + type_repeats * 3))
        scored.append((template, id_repeats, type_repeats, weight))

    weighted = [(t, w) for t, _, _, w in scored if w > 0]
    if weighted:
        return _roulette(weighted, rng)

    # Saturated history: least-repeated type first, then least-repeated id.
    fewest_type = min(type_repeats for _, _, type_repeats, _ in scored)
    subset = [s for s in scored if s[2] == fewest_type]
    fewest_id = min(id_repeats for _, id_repeats, _, _ in subset)
    subset = [s for s in subset if s[1] == fewest_id]
    return _roulette([(t, t.base_weight if t.base_weight > 0 else 1.0) for t, _, _, _ in subset], rng)
