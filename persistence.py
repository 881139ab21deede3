"""
persistence.py - Versioned key-value store for assumption and scenario edits.

Records are saved as JSON under schema-versioned keys.  Loading always
deep-merges the saved data over the current defaults, so fields added to a
record after the data was saved silently take their default value.
"""

import copy
import json
import logging
import os
from dataclasses import asdict, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from models import (GlobalAssumptions, SupervisionRules, TieredConfiguration,
                    HRRiskAssumptions, Scenario, ScenarioOverrides,
                    SupervisionModel, SensitivityToggles, default_scenarios)

logger = logging.getLogger('sep')

# Bump a version when a record's shape changes incompatibly; older saves
# under the previous key are then ignored.
KEY_GLOBAL    = "sep_global_v2"
KEY_RULES     = "sep_rules_v3"
KEY_HR        = "sep_hr_v1"
KEY_SCENARIOS = "sep_scenarios_v2"
KEY_TOGGLES   = "sep_toggles_v1"

STORE_KEYS = (KEY_GLOBAL, KEY_RULES, KEY_HR, KEY_SCENARIOS, KEY_TOGGLES)


class StoreError(RuntimeError):
    """Raised when the store file cannot be written."""


# ══════════════════════════════════════════════════════════════════════════════
# MERGE & CONVERSION
# ══════════════════════════════════════════════════════════════════════════════

def deep_merge(defaults: Any, saved: Any) -> Any:
    """
    Merge saved data over defaults.

    Dicts merge key by key (recursively); lists and scalars from saved
    replace the default outright; keys missing from saved keep the default.
    """
    if not isinstance(defaults, dict) or not isinstance(saved, dict):
        return copy.deepcopy(defaults) if saved is None else copy.deepcopy(saved)

    merged = copy.deepcopy(defaults)
    for key, value in saved.items():
        if key in merged:
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _plain(obj: Any) -> Any:
    """Make asdict() output JSON-ready (enums -> values)."""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {k: _plain(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_plain(v) for v in obj]
    return obj


def to_plain(record) -> Dict[str, Any]:
    return _plain(asdict(record))


def _known(record_type, data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys the dataclass no longer has."""
    names = {f.name for f in fields(record_type)}
    return {k: v for k, v in data.items() if k in names}


def global_from_dict(data: Dict[str, Any]) -> GlobalAssumptions:
    merged = deep_merge(to_plain(GlobalAssumptions()), data)
    return GlobalAssumptions(**_known(GlobalAssumptions, merged))


def rules_from_dict(data: Dict[str, Any]) -> SupervisionRules:
    merged = deep_merge(to_plain(SupervisionRules()), data)
    merged = _known(SupervisionRules, merged)
    for key in ("tiered_b", "tiered_c"):
        tier = merged[key] if isinstance(merged[key], dict) else {}
        merged[key] = TieredConfiguration(**_known(TieredConfiguration, tier))
    return SupervisionRules(**merged)


def hr_from_dict(data: Dict[str, Any]) -> HRRiskAssumptions:
    merged = deep_merge(to_plain(HRRiskAssumptions()), data)
    return HRRiskAssumptions(**_known(HRRiskAssumptions, merged))


def toggles_from_dict(data: Dict[str, Any]) -> SensitivityToggles:
    merged = deep_merge(to_plain(SensitivityToggles()), data)
    return SensitivityToggles(**_known(SensitivityToggles, merged))


def scenario_from_dict(data: Dict[str, Any],
                       default: Optional[Scenario] = None) -> Scenario:
    if default is None:
        default = Scenario(id=str(data.get("id", "")), name=str(data.get("name", "")))
    merged = _known(Scenario, deep_merge(to_plain(default), data))

    try:
        merged["supervision_model"] = SupervisionModel(merged["supervision_model"])
    except ValueError:
        logger.warning("Unknown supervision model %r for scenario %s; using %s",
                       merged["supervision_model"], merged["id"],
                       default.supervision_model.value)
        merged["supervision_model"] = default.supervision_model

    merged["overrides"] = ScenarioOverrides(**_known(ScenarioOverrides,
                                                     merged.get("overrides") or {}))
    return Scenario(**merged)


def scenarios_from_dict(data: Dict[str, Any]) -> Dict[str, Scenario]:
    """Defaults first, saved edits over them; scenarios only in saved are kept."""
    defaults = default_scenarios()
    result: Dict[str, Scenario] = {}
    for sid, sc in defaults.items():
        saved = data.get(sid)
        result[sid] = scenario_from_dict(saved, sc) if isinstance(saved, dict) else sc
    for sid, saved in data.items():
        if sid not in result and isinstance(saved, dict):
            result[sid] = scenario_from_dict({"id": sid, **saved})
    return result


# ══════════════════════════════════════════════════════════════════════════════
# STORE
# ══════════════════════════════════════════════════════════════════════════════

class ScenarioStore:
    """
    JSON-file key-value store.

    A missing file behaves as an empty store.  An unreadable file is logged
    and treated as empty so the dashboard always starts from defaults.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    # ── raw access ────────────────────────────────────────────────────────────
    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error reading store {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Store {self.path} does not hold a JSON object; ignoring it")
            return {}
        return data

    def _write_all(self, data: Dict[str, Any]):
        tmp = self.path.with_suffix(self.path.suffix + '.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, 'w') as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error(f"Error writing store {self.path}: {e}")
            raise StoreError(f"Could not write {self.path}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        return self._read_all().get(key, default)

    def set(self, key: str, value: Any):
        data = self._read_all()
        data[key] = value
        self._write_all(data)
        logger.info("Saved %s to %s", key, self.path, extra={"store_key": key})

    def reset(self):
        """Forget every saved edit."""
        data = self._read_all()
        for key in STORE_KEYS:
            data.pop(key, None)
        self._write_all(data)
        logger.info("Reset saved assumptions in %s", self.path)

    # ── typed records ─────────────────────────────────────────────────────────
    def _load(self, key: str, builder):
        saved = self.get(key)
        return builder(saved if isinstance(saved, dict) else {})

    def load_global(self) -> GlobalAssumptions:
        return self._load(KEY_GLOBAL, global_from_dict)

    def load_rules(self) -> SupervisionRules:
        return self._load(KEY_RULES, rules_from_dict)

    def load_hr(self) -> HRRiskAssumptions:
        return self._load(KEY_HR, hr_from_dict)

    def load_scenarios(self) -> Dict[str, Scenario]:
        return self._load(KEY_SCENARIOS, scenarios_from_dict)

    def load_toggles(self) -> SensitivityToggles:
        return self._load(KEY_TOGGLES, toggles_from_dict)

    def save_global(self, g: GlobalAssumptions):
        self.set(KEY_GLOBAL, to_plain(g))

    def save_rules(self, rules: SupervisionRules):
        self.set(KEY_RULES, to_plain(rules))

    def save_hr(self, hr: HRRiskAssumptions):
        self.set(KEY_HR, to_plain(hr))

    def save_scenarios(self, scenarios: Dict[str, Scenario]):
        self.set(KEY_SCENARIOS, {sid: to_plain(sc) for sid, sc in scenarios.items()})

    def save_toggles(self, toggles: SensitivityToggles):
        self.set(KEY_TOGGLES, to_plain(toggles))
