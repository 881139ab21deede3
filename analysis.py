"""
analysis.py — Comparison tables and sensitivity helpers for SEP.

Everything here re-runs the engine with modified inputs; nothing is cached
and nothing mutates the caller's records.
"""
from dataclasses import replace, fields
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from engine import compute_all_metrics
from models import (GlobalAssumptions, SupervisionRules, HRRiskAssumptions,
                    Scenario, SensitivityToggles, ComputedMetrics, TOGGLE_LABELS)


# ══════════════════════════════════════════════════════════════════════════════
# EXECUTIVE SUMMARY TABLE
# ══════════════════════════════════════════════════════════════════════════════

def metrics_table(metrics: Dict[str, ComputedMetrics],
                  scenarios: Dict[str, Scenario]) -> pd.DataFrame:
    """One row per scenario, columns in executive-summary order."""
    rows = []
    for sid, m in metrics.items():
        sc = scenarios[sid]
        rows.append({
            "scenario":          sid,
            "name":              sc.name,
            "frontline":         sc.frontline_count,
            "peers":             sc.peer_count,
            "lead_fte":          sc.lead_fte,
            "model":             sc.supervision_model.value,
            "payroll_loaded":    m.payroll_loaded,
            "payroll_delta":     m.payroll_delta_loaded,
            "freed_hours":       m.freed_supervisor_hours,
            "lead_revenue":      m.lead_revenue,
            "peer_revenue":      m.peer_revenue,
            "realized_revenue":  m.realized_revenue,
            "grant_savings":     m.grant_savings,
            "hard_labor_savings": m.hard_labor_savings,
            "retention_savings": m.retention_savings,
            "net_monthly_hard":  m.net_monthly_hard,
            "net_monthly_soft":  m.net_monthly_soft,
            "net_monthly_total": m.net_monthly_total,
            "net_annual":        m.net_annual_steady_state,
            "one_time_cost":     m.one_time_cost,
            "net_year_one":      m.net_year_one,
            "break_even_months": m.break_even_months,
            "opportunity_cost":  m.opportunity_cost_monthly,
            "net_economic":      m.net_monthly_hard_with_opportunity,
            "effective_ratio":   m.effective_ratio,
            "compliance":        m.compliance_status,
            "safety":            m.safety_status,
            "risks":             "; ".join(m.risk_factors),
        })
    return pd.DataFrame(rows)


def headline(metrics: Dict[str, ComputedMetrics], baseline_id: str = "A") -> Dict:
    """Best alternative by hard monthly net and by year-one net."""
    alts = {sid: m for sid, m in metrics.items() if sid != baseline_id}
    if not alts:
        return {"best_monthly": None, "best_year_one": None}
    best_monthly  = max(alts, key=lambda sid: alts[sid].net_monthly_hard)
    best_year_one = max(alts, key=lambda sid: alts[sid].net_year_one)
    return {
        "best_monthly":        best_monthly,
        "best_monthly_value":  alts[best_monthly].net_monthly_hard,
        "best_year_one":       best_year_one,
        "best_year_one_value": alts[best_year_one].net_year_one,
    }


# ══════════════════════════════════════════════════════════════════════════════
# SENSITIVITY TOGGLES (STRESS TEST)
# ══════════════════════════════════════════════════════════════════════════════

def toggle_impact(scenarios: Dict[str, Scenario], g: GlobalAssumptions,
                  rules: SupervisionRules, hr: HRRiskAssumptions,
                  baseline_id: str = "A",
                  toggles: Optional[SensitivityToggles] = None) -> pd.DataFrame:
    """
    For each toggle that is currently on, switch only that toggle off and
    report how each scenario's nets move (off minus on).
    """
    if toggles is None:
        toggles = SensitivityToggles()
    base = compute_all_metrics(scenarios, g, rules, hr, baseline_id, toggles)

    rows = []
    for name, label in TOGGLE_LABELS.items():
        if not getattr(toggles, name):
            continue
        flipped = compute_all_metrics(scenarios, g, rules, hr, baseline_id,
                                      replace(toggles, **{name: False}))
        for sid, m in base.items():
            f = flipped[sid]
            rows.append({
                "toggle":          label,
                "scenario":        sid,
                "delta_hard":      f.net_monthly_hard - m.net_monthly_hard,
                "delta_soft":      f.net_monthly_soft - m.net_monthly_soft,
                "delta_total":     f.net_monthly_total - m.net_monthly_total,
                "delta_year_one":  f.net_year_one - m.net_year_one,
                "delta_economic":  (f.net_monthly_hard_with_opportunity
                                    - m.net_monthly_hard_with_opportunity),
            })
    return pd.DataFrame(rows)


# ══════════════════════════════════════════════════════════════════════════════
# ONE-PARAMETER SWEEP
# ══════════════════════════════════════════════════════════════════════════════

_SECTIONS = ("global", "rules", "hr")


def sweep_values(lo: float, hi: float, step: float) -> np.ndarray:
    """Inclusive grid lo..hi."""
    return np.round(np.arange(lo, hi + step / 2, step), 4)


def run_sensitivity(scenario_id: str, section: str, param: str, values,
                    scenarios: Dict[str, Scenario], g: GlobalAssumptions,
                    rules: SupervisionRules, hr: HRRiskAssumptions,
                    baseline_id: str = "A",
                    toggles: Optional[SensitivityToggles] = None) -> pd.DataFrame:
    """
    Re-run the full scenario set once per value of `section.param` and
    return one row per value with the scenario's headline metrics.
    """
    if section not in _SECTIONS:
        raise ValueError(f"Unknown section '{section}' (expected one of {_SECTIONS})")
    target = {"global": g, "rules": rules, "hr": hr}[section]
    if param not in {f.name for f in fields(target)}:
        raise ValueError(f"{type(target).__name__} has no field '{param}'")

    rows: List[Dict] = []
    for v in values:
        v = float(v)
        inputs = {"global": g, "rules": rules, "hr": hr}
        inputs[section] = replace(target, **{param: v})
        m = compute_all_metrics(scenarios, inputs["global"], inputs["rules"],
                                inputs["hr"], baseline_id, toggles)[scenario_id]
        rows.append({
            "value":             v,
            "freed_hours":       m.freed_supervisor_hours,
            "realized_revenue":  m.realized_revenue,
            "payroll_delta":     m.payroll_delta_loaded,
            "net_monthly_hard":  m.net_monthly_hard,
            "net_monthly_total": m.net_monthly_total,
            "net_year_one":      m.net_year_one,
            "break_even_months": m.break_even_months,
            "safety":            m.safety_status,
        })
    return pd.DataFrame(rows)
