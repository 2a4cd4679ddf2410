from __future__ import annotations

from arena.contracts import CyclePhase, Location
from arena.simulation.narrative import build_event_narrative, build_god_mode_narrative
from arena.simulation.special_events import PedestalNarrative


def test_standard_narrative_lists_participants_and_outcome():
    text = build_event_narrative("combat-1", CyclePhase.DAY, Location.FOREST, ["Ada", "Bo"], ["Bo"])
    assert text == "Event combat-1 at the forest during day with Ada, Bo. Eliminated: Bo."


def test_standard_narrative_without_eliminations():
    text = build_event_narrative("alliance-1", "night", Location.LAKE, ["Ada", "Bo"], [])
    assert text.endswith("Nobody was eliminated.")
    assert "during night" in text


def test_pedestal_narratives():
    exploded = build_event_narrative(
        "hazard-pedestal-early-exit-1",
        CyclePhase.BLOODBATH,
        Location.CORNUCOPIA,
        ["Ada"],
        ["Ada"],
        special=PedestalNarrative("Ada", exploded=True),
    )
    assert exploded == "Ada leaves the pedestal early at the Cornucopia and explodes."
    survived = build_event_narrative(
        "hazard-pedestal-early-exit-1",
        CyclePhase.BLOODBATH,
        Location.CORNUCOPIA,
        ["Ada"],
        [],
        special=PedestalNarrative("Ada", exploded=False),
    )
    assert survived == "Ada leaves the pedestal early at the Cornucopia, but does not explode."


def test_god_mode_narrative():
    assert build_god_mode_narrative("god-global-toxic_fog", Location.CORNUCOPIA, [], "fog rolls in") == (
        "God mode god-global-toxic_fog at the Cornucopia: fog rolls in."
    )
    assert "affects Ada" in build_god_mode_narrative("god-revive-tribute", Location.RUINS, ["Ada"], "full revival")
