import pytest

from analysis import (metrics_table, headline, toggle_impact, sweep_values,
                      run_sensitivity)
from engine import compute_all_metrics
from models import SensitivityToggles


def test_metrics_table_one_row_per_scenario(g, rules, hr, scenarios):
    metrics = compute_all_metrics(scenarios, g, rules, hr, "A")
    df = metrics_table(metrics, scenarios)
    assert list(df["scenario"]) == ["A", "B", "C"]
    assert df.loc[df["scenario"] == "C", "payroll_delta"].iloc[0] == pytest.approx(6_156.0)
    assert df.loc[df["scenario"] == "B", "model"].iloc[0] == "ConfigurationB"


def test_headline_excludes_baseline(g, rules, hr, scenarios):
    best = headline(compute_all_metrics(scenarios, g, rules, hr, "A"), "A")
    assert best["best_monthly"] == "B"
    assert best["best_monthly_value"] == pytest.approx(263.25 - 972.0)
    assert best["best_year_one"] == "B"


def test_headline_with_only_baseline(g, rules, hr, scenarios):
    only_a = {"A": scenarios["A"]}
    assert headline(compute_all_metrics(only_a, g, rules, hr, "A"), "A")["best_monthly"] is None


def test_toggle_impact_covers_enabled_toggles(g, rules, hr, scenarios):
    df = toggle_impact(scenarios, g, rules, hr, "A", SensitivityToggles())
    assert set(df["toggle"]) == {"Revenue Opportunity", "Retention Savings",
                                 "Year 1 Transition Costs"}
    assert len(df) == 9

    retention_b = df[(df["toggle"] == "Retention Savings") & (df["scenario"] == "B")].iloc[0]
    assert retention_b["delta_soft"] == pytest.approx(-125.0)
    assert retention_b["delta_hard"] == pytest.approx(0.0)

    transition_b = df[(df["toggle"] == "Year 1 Transition Costs") & (df["scenario"] == "B")].iloc[0]
    assert transition_b["delta_year_one"] == pytest.approx(5_760.0)


def test_toggle_impact_empty_when_all_off(g, rules, hr, scenarios):
    off = SensitivityToggles(include_revenue=False, include_retention=False,
                             include_transition_cost=False)
    assert toggle_impact(scenarios, g, rules, hr, "A", off).empty


def test_sweep_values_inclusive():
    assert list(sweep_values(0.0, 1.0, 0.25)) == [0.0, 0.25, 0.5, 0.75, 1.0]


def test_run_sensitivity_lead_utilization(g, rules, hr, scenarios):
    df = run_sensitivity("B", "global", "lead_utilization", [0.0, 0.65],
                         scenarios, g, rules, hr, "A")
    assert list(df["value"]) == [0.0, 0.65]
    assert df["realized_revenue"].iloc[0] == 0.0
    assert df["net_monthly_hard"].iloc[0] == pytest.approx(-972.0 + 3 * 16.5 * 1.35)
    assert df["realized_revenue"].iloc[1] == pytest.approx(263.25)


def test_run_sensitivity_does_not_mutate_inputs(g, rules, hr, scenarios):
    run_sensitivity("C", "rules", "internal_max_ratio", [1, 2], scenarios, g, rules, hr, "A")
    assert rules.internal_max_ratio == 5.0


def test_run_sensitivity_rejects_unknown_inputs(g, rules, hr, scenarios):
    with pytest.raises(ValueError):
        run_sensitivity("B", "payroll", "lead_utilization", [0.5], scenarios, g, rules, hr)
    with pytest.raises(ValueError):
        run_sensitivity("B", "hr", "no_such_field", [0.5], scenarios, g, rules, hr)
