import json
import logging
from dataclasses import replace

import pytest

from models import (GlobalAssumptions, SupervisionRules, HRRiskAssumptions,
                    ScenarioOverrides, SupervisionModel, SensitivityToggles)
from persistence import (ScenarioStore, StoreError, deep_merge, to_plain,
                         KEY_GLOBAL, KEY_RULES, KEY_SCENARIOS)


# ── deep_merge ──────────────────────────────────────────────────────────────

def test_deep_merge_keeps_new_default_fields():
    defaults = {"a": 1, "b": 2, "nested": {"x": 1, "y": 2}}
    saved = {"a": 10, "nested": {"x": 5}}
    assert deep_merge(defaults, saved) == {"a": 10, "b": 2, "nested": {"x": 5, "y": 2}}


def test_deep_merge_lists_and_scalars_replace():
    assert deep_merge({"l": [1, 2, 3]}, {"l": [9]}) == {"l": [9]}
    assert deep_merge({"v": 1}, {"v": None}) == {"v": 1}
    assert deep_merge({"v": {"x": 1}}, {"v": 3}) == {"v": 3}


def test_deep_merge_keeps_saved_only_keys_and_copies():
    defaults = {"nested": {"x": 1}}
    merged = deep_merge(defaults, {"extra": {"z": 1}})
    merged["nested"]["x"] = 99
    assert merged["extra"] == {"z": 1}
    assert defaults["nested"]["x"] == 1


# ── ScenarioStore ───────────────────────────────────────────────────────────

@pytest.fixture
def store(tmp_path):
    return ScenarioStore(tmp_path / "store.json")


def test_missing_file_loads_defaults(store):
    assert store.load_global() == GlobalAssumptions()
    assert store.load_rules() == SupervisionRules()
    assert store.load_hr() == HRRiskAssumptions()
    assert store.load_toggles() == SensitivityToggles()
    assert list(store.load_scenarios()) == ["A", "B", "C"]


def test_round_trip(store, scenarios):
    g = replace(GlobalAssumptions(), lead_base_hourly=52.0, credentialed_peer_ceiling=2)
    rules = SupervisionRules()
    rules.tiered_c.oversight_per_peer = 2.0
    scenarios["C"] = replace(scenarios["C"], peer_count=2,
                             overrides=ScenarioOverrides(billable_rate=150.0))
    toggles = SensitivityToggles(include_opportunity_cost=True)

    store.save_global(g)
    store.save_rules(rules)
    store.save_scenarios(scenarios)
    store.save_toggles(toggles)

    assert store.load_global() == g
    assert store.load_rules().tiered_c.oversight_per_peer == 2.0
    loaded = store.load_scenarios()
    assert loaded["C"].peer_count == 2
    assert loaded["C"].overrides.billable_rate == 150.0
    assert loaded["C"].supervision_model is SupervisionModel.CONFIG_C
    assert store.load_toggles() == toggles


def test_saved_json_uses_enum_values(store, scenarios):
    store.save_scenarios(scenarios)
    raw = json.loads(store.path.read_text())
    assert raw[KEY_SCENARIOS]["B"]["supervision_model"] == "ConfigurationB"


def test_partial_saved_record_is_filled_from_defaults(store):
    store.set(KEY_GLOBAL, {"lead_base_hourly": 60.0, "retired_field": 1})
    store.set(KEY_RULES, {"tiered_b": {"oversight_per_peer": 3.0}})
    g = store.load_global()
    assert g.lead_base_hourly == 60.0
    assert g.frontline_base_hourly == 24.0
    rules = store.load_rules()
    assert rules.tiered_b.oversight_per_peer == 3.0
    assert rules.tiered_b.peer_group_only == 2.0


def test_extra_saved_scenario_is_kept(store):
    store.set(KEY_SCENARIOS, {"D": {"name": "Second peer", "frontline_count": 6,
                                    "peer_count": 2, "supervision_model": "ConfigurationC"}})
    loaded = store.load_scenarios()
    assert list(loaded) == ["A", "B", "C", "D"]
    assert loaded["D"].id == "D"
    assert loaded["D"].supervision_model is SupervisionModel.CONFIG_C


def test_unknown_model_falls_back_to_default(store):
    store.set(KEY_SCENARIOS, {"B": {"supervision_model": "ConfigurationZ"}})
    assert store.load_scenarios()["B"].supervision_model is SupervisionModel.CONFIG_B


def test_corrupt_file_loads_defaults(store):
    store.path.write_text("{not json")
    assert store.load_global() == GlobalAssumptions()


def test_non_object_file_loads_defaults(store):
    store.path.write_text("[1, 2, 3]")
    assert store.load_hr() == HRRiskAssumptions()


def test_reset_forgets_saved_records(store):
    store.save_global(replace(GlobalAssumptions(), benefit_load=0.2))
    store.set("unrelated", 1)
    store.reset()
    assert store.load_global() == GlobalAssumptions()
    assert store.get("unrelated") == 1


def test_write_failure_raises_store_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    store = ScenarioStore(blocker / "store.json")
    with pytest.raises(StoreError):
        store.save_global(GlobalAssumptions())


def test_to_plain_is_json_serializable(scenarios):
    json.dumps(to_plain(scenarios["B"]))


def test_save_log_carries_store_key(store, caplog):
    caplog.set_level(logging.INFO, logger="sep")
    store.save_global(GlobalAssumptions())
    assert [r.store_key for r in caplog.records if hasattr(r, "store_key")] == [KEY_GLOBAL]


def test_string_model_in_saved_scenario_round_trips(store, scenarios):
    store.save_scenarios(scenarios)
    assert store.load_scenarios()["C"].is_tiered_model
