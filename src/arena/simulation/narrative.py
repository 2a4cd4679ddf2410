from __future__ import annotations

from typing import Sequence

from arena.contracts import CyclePhase, Location
from arena.simulation.special_events import PedestalNarrative

LOCATION_LABELS: dict[Location, str] = {
    Location.CORNUCOPIA: "the Cornucopia",
    Location.FOREST: "the forest",
    Location.RIVER: "the river",
    Location.LAKE: "the lake",
    Location.MEADOW: "the meadow",
    Location.CAVES: "the caves",
    Location.RUINS: "the ruins",
    Location.CLIFFS: "the cliffs",
}


def location_label(location: Location) -> str:
    return LOCATION_LABELS[location]


def build_event_narrative(
    template_id: str,
    phase: CyclePhase | str,
    location: Location,
    participant_names: Sequence[str],
    eliminated_names: Sequence[str],
    special: PedestalNarrative | None = None,
) -> str:
    label = location_label(location)
    if special is not None:
        if special.exploded:
            return f"{special.leaver_name} leaves the pedestal early at {label} and explodes."
        return f"{special.leaver_name} leaves the pedestal early at {label}, but does not explode."

    phase_value = phase.value if isinstance(phase, CyclePhase) else phase
    participants = ", ".join(participant_names) if participant_names else "no participants"
    if eliminated_names:
        suffix = f" Eliminated: {', '.join(eliminated_names)}."
    else:
        suffix = " Nobody was eliminated."
    return f"Event {template_id} at {label} during {phase_value} with {participants}.{suffix}"


def build_god_mode_narrative(template_id: str, location: Location, participant_names: Sequence[str], detail: str) -> str:
    label = location_label(location)
    if participant_names:
        return f"God mode {template_id} at {label} affects {', '.join(participant_names)}: {detail}."
    return f"God mode {template_id} at {label}: {detail}."
