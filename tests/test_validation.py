from __future__ import annotations

import pytest

from arena.contracts import (
    ACTION_KINDS,
    ForceEncounterAction,
    GlobalEventKind,
    LocalizedFireAction,
    Location,
    Relation,
    ResourceAdjustmentAction,
    ReviveMode,
    SetRelationshipAction,
    SimulationSpeed,
    ValidationError,
    action_from_plain,
    action_issues,
)
from arena.core import EngineConfig, default_engine_config, engine_config_from_overrides
from arena.simulation import RequestValidator
from arena.simulation.roster import build_default_roster


def test_parse_create_request_accepts_valid_payload():
    roster, names = build_default_roster(10)
    parsed = RequestValidator().parse_create_request(
        {
            "roster_character_ids": roster,
            "participant_names": names,
            "settings": {"simulation_speed": "4x", "seed": "abc"},
        }
    )
    assert parsed.roster_character_ids == roster
    assert parsed.participant_names == names
    assert parsed.settings.simulation_speed == SimulationSpeed.X4
    assert parsed.settings.seed == "abc"


def test_parse_create_request_collects_every_issue():
    roster, _ = build_default_roster(10)
    with pytest.raises(ValidationError) as excinfo:
        RequestValidator().parse_create_request(
            {
                "roster_character_ids": roster,
                "participant_names": ["only one"],
                "settings": {"surprise_level": "extreme", "event_profile": "calm"},
            }
        )
    codes = [i.code for i in excinfo.value.issues]
    assert codes == ["NAMES_LENGTH", "INVALID_ENUM", "INVALID_ENUM"]


def test_null_seed_is_allowed_and_blank_is_not():
    validator = RequestValidator()
    assert validator.parse_settings({"seed": None}).seed is None
    with pytest.raises(ValidationError):
        validator.parse_settings({"seed": "  "})
    with pytest.raises(ValidationError):
        validator.parse_settings({"seed": 7})
    with pytest.raises(ValidationError):
        validator.parse_settings([])


def test_action_count_limits():
    validator = RequestValidator()
    with pytest.raises(ValidationError):
        validator.parse_god_mode_actions({"actions": []})
    with pytest.raises(ValidationError):
        validator.parse_god_mode_actions({"actions": [{"kind": "global_event", "event": "toxic_fog"}] * 9})
    assert len(validator.parse_god_mode_actions({"actions": [{"kind": "global_event", "event": "toxic_fog"}] * 8})) == 8


def test_action_from_plain_decodes_every_kind():
    assert set(ACTION_KINDS) == {
        "global_event",
        "localized_fire",
        "force_encounter",
        "separate_tributes",
        "resource_adjustment",
        "revive_tribute",
        "set_relationship",
    }
    assert action_from_plain({"kind": "global_event", "event": "cornucopia_resupply"}).event == GlobalEventKind.CORNUCOPIA_RESUPPLY
    assert action_from_plain({"kind": "localized_fire", "location": "caves"}) == LocalizedFireAction(Location.CAVES, 1)
    assert action_from_plain({"kind": "force_encounter", "tribute_a_id": "a", "tribute_b_id": "b"}) == ForceEncounterAction("a", "b")
    assert action_from_plain({"kind": "separate_tributes", "tribute_ids": ["a", "b"]}).tribute_ids == ("a", "b")
    assert action_from_plain({"kind": "resource_adjustment", "target_id": "a", "delta": -20}).delta == -20
    assert action_from_plain({"kind": "revive_tribute", "target_id": "a"}).revive_mode == ReviveMode.STANDARD
    assert action_from_plain({"kind": "set_relationship", "source_id": "a", "target_id": "b"}).relation == Relation.ENEMY
    assert action_from_plain({"kind": "set_relationship", "source_id": "a", "target_id": "b", "relation": None}) == (
        SetRelationshipAction("a", "b", None)
    )


@pytest.mark.parametrize(
    ("raw", "code"),
    [
        ("not a dict", "INVALID_ACTION"),
        ({"kind": "meteor"}, "UNKNOWN_ACTION_KIND"),
        ({"kind": ["global_event"]}, "UNKNOWN_ACTION_KIND"),
        ({"kind": "localized_fire", "location": "forest", "persistence_turns": 0}, "OUT_OF_RANGE"),
        ({"kind": "localized_fire", "location": "forest", "persistence_turns": True}, "OUT_OF_RANGE"),
        ({"kind": "separate_tributes", "tribute_ids": []}, "INVALID_IDS"),
        ({"kind": "resource_adjustment", "target_id": "a", "delta": 101}, "OUT_OF_RANGE"),
        ({"kind": "revive_tribute", "target_id": ""}, "REQUIRED_TEXT"),
        ({"kind": "set_relationship", "source_id": "a", "target_id": "b", "relation": "friend"}, "INVALID_ENUM"),
    ],
)
def test_action_from_plain_rejects_bad_shapes(raw, code):
    with pytest.raises(ValidationError) as excinfo:
        action_from_plain(raw)
    assert excinfo.value.issues[0].code == code


def test_engine_config_overrides_are_validated():
    assert engine_config_from_overrides({"repeat_cap": 3}).repeat_cap == 3
    with pytest.raises(ValueError):
        engine_config_from_overrides({"no_such_key": 1})
    with pytest.raises(ValueError):
        engine_config_from_overrides({"enemy_bias_chance": 1.5})
    with pytest.raises(ValueError):
        EngineConfig(min_roster_size=20, max_roster_size=10).validate()


def test_default_engine_config_is_valid():
    config = default_engine_config()
    config.validate()
    assert (config.min_roster_size, config.max_roster_size) == (10, 48)
    assert config.max_pending_actions == 6


def test_typed_actions_share_the_decoder_bounds():
    assert action_issues(LocalizedFireAction(Location.LAKE, 5)) == []
    assert action_issues(ResourceAdjustmentAction("a", -100)) == []
    assert [i.code for i in action_issues(LocalizedFireAction(Location.LAKE, 6))] == ["OUT_OF_RANGE"]
    odd = ResourceAdjustmentAction(" ", 150, resource="mana")
    assert [i.field_path for i in action_issues(odd, "actions[2]")] == [
        "actions[2].target_id",
        "actions[2].delta",
        "actions[2].resource",
    ]
    with pytest.raises(ValidationError) as excinfo:
        action_from_plain({"kind": "resource_adjustment", "target_id": "a", "delta": 5, "resource": "mana"})
    assert [i.code for i in excinfo.value.issues] == ["UNSUPPORTED_RESOURCE"]
