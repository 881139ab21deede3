"""
SEP Calculation Engine — v2
Closed-form scenario economics for a tiered clinical-supervision model.

Pipeline per scenario (all pure, no retained state):
  Payroll      -> base / loaded monthly payroll
  Load Model   -> lead-clinician supervision hours (baseline or tiered)
  Compliance   -> freed hours, demand, capacity, ratio, safety
  Revenue      -> lead revenue, grant offset, peer gap-fill revenue
  Onboarding   -> one-time hiring cost vs. baseline
  Aggregator   -> hard / soft / total net, year-one, break-even, risks

The anti-double-counting rule lives in compute_scenario_metrics() only:
freed hours are either billed (revenue) or counted as hard cost avoidance,
never both.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple, Optional

from models import (GlobalAssumptions, SupervisionRules, HRRiskAssumptions,
                    Scenario, SupervisionModel, SensitivityToggles,
                    ComputedMetrics, CAPACITY_HOURS_PER_FTE,
                    RETENTION_REDUCTION_RATE, TRANSITION_OT_MULTIPLIER,
                    resolve)

logger = logging.getLogger('sep')


# ══════════════════════════════════════════════════════════════════════════════
# PAYROLL
# ══════════════════════════════════════════════════════════════════════════════
def calculate_payroll(scenario: Scenario, g: GlobalAssumptions) -> Tuple[float, float]:
    """Returns (base, loaded) monthly payroll across frontline, peer and lead."""
    hrs = g.fte_hours_per_month
    base = (scenario.frontline_count * scenario.frontline_wage(g) * hrs
            + scenario.peer_count    * scenario.peer_wage(g)      * hrs
            + scenario.lead_fte      * scenario.lead_wage(g)      * hrs)
    loaded = base * (1.0 + scenario.benefit_load(g))
    return base, loaded


# ══════════════════════════════════════════════════════════════════════════════
# SUPERVISORY LOAD MODEL
# ══════════════════════════════════════════════════════════════════════════════
def supervisor_load(scenario: Scenario, rules: SupervisionRules,
                    model: Optional[SupervisionModel] = None) -> float:
    """
    Monthly supervision hours the lead clinician personally delivers.
    model: evaluate under this variant instead of the scenario's own
           (used to get "today's" load for any headcount).
    """
    model = scenario.supervision_model if model is None else model
    cfg = rules.tiered_config(model)

    if cfg is None:
        return (scenario.frontline_count * rules.baseline_indiv_per_staff
                + rules.baseline_group_per_team)

    direct     = scenario.frontline_count * cfg.lead_indiv_per_staff
    group      = cfg.lead_group_hours
    management = scenario.peer_count * cfg.oversight_per_peer
    return direct + group + management


def total_demand_hours(scenario: Scenario, rules: SupervisionRules) -> float:
    """All supervision work that must happen, whoever delivers it."""
    cfg = rules.tiered_config(scenario.supervision_model)
    if cfg is None:
        return supervisor_load(scenario, rules, SupervisionModel.BASELINE)
    indiv = scenario.frontline_count * (cfg.lead_indiv_per_staff + cfg.peer_indiv_per_staff)
    return indiv + cfg.all_group_hours


# ══════════════════════════════════════════════════════════════════════════════
# CAPACITY & COMPLIANCE
# ══════════════════════════════════════════════════════════════════════════════
@dataclass
class ComplianceResult:
    baseline_load:   float
    scenario_load:   float
    freed_hours:     float
    required_hours:  float
    actual_hours:    float
    effective_ratio: float
    safety:          str    # "OK" | "Overloaded"
    status:          str    # "OK" | "Non-Compliant"


def calculate_compliance(scenario: Scenario, rules: SupervisionRules) -> ComplianceResult:
    baseline_load = supervisor_load(scenario, rules, SupervisionModel.BASELINE)
    scenario_load = supervisor_load(scenario, rules)
    freed         = max(0.0, baseline_load - scenario_load)

    required = total_demand_hours(scenario, rules)
    actual   = (scenario.lead_fte * CAPACITY_HOURS_PER_FTE
                + scenario.peer_count * CAPACITY_HOURS_PER_FTE)

    ratio = (scenario.frontline_count / scenario.peer_count
             if scenario.peer_count > 0 else 0.0)
    safety = ("Overloaded"
              if scenario.peer_count > 0 and ratio > rules.internal_max_ratio
              else "OK")
    status = "Non-Compliant" if safety == "Overloaded" else "OK"

    return ComplianceResult(
        baseline_load=baseline_load, scenario_load=scenario_load,
        freed_hours=freed, required_hours=required, actual_hours=actual,
        effective_ratio=ratio, safety=safety, status=status,
    )


# ══════════════════════════════════════════════════════════════════════════════
# REVENUE REALIZATION
# ══════════════════════════════════════════════════════════════════════════════
def lead_revenue(freed_hours: float, scenario: Scenario, g: GlobalAssumptions) -> float:
    """Freed lead-clinician hours reinvested into billable work."""
    return freed_hours * scenario.utilization(g) * scenario.billable_rate(g)


def grant_offset(scenario: Scenario, g: GlobalAssumptions) -> Tuple[float, float]:
    """
    First-in priority: the first N staffed units per role are grant-covered.
    Returns (monthly savings, units covered).  Reduces cost, never revenue.
    """
    hrs  = g.fte_hours_per_month
    load = scenario.benefit_load(g)

    peer_units      = max(0.0, min(scenario.peer_count, g.grant_slots_peer))
    frontline_units = max(0.0, min(scenario.frontline_count, g.grant_slots_frontline))

    savings = (peer_units      * g.loaded(scenario.peer_wage(g), load)      * hrs
               + frontline_units * g.loaded(scenario.frontline_wage(g), load) * hrs)
    return savings, peer_units + frontline_units


def peer_revenue(scenario: Scenario, g: GlobalAssumptions) -> Tuple[float, float]:
    """
    Gap-fill billing: grant-funded peers are non-billable.
    Returns (monthly revenue, billable headcount).
    """
    if not g.peer_billing_enabled:
        return 0.0, 0.0

    billable = max(0.0, scenario.peer_count - g.grant_slots_peer)
    if g.credentialed_peer_ceiling is not None:
        billable = min(billable, max(0.0, float(g.credentialed_peer_ceiling)))

    revenue = billable * g.fte_hours_per_month * g.peer_utilization * g.peer_billable_rate
    return revenue, billable


# ══════════════════════════════════════════════════════════════════════════════
# ONBOARDING & TRANSITION
# ══════════════════════════════════════════════════════════════════════════════
def onboarding_cost(scenario: Scenario, hr: HRRiskAssumptions, baseline: Scenario) -> float:
    new_frontline = max(0.0, scenario.frontline_count - baseline.frontline_count)
    new_peers     = max(0.0, scenario.peer_count - baseline.peer_count)

    cost = new_frontline * hr.onboarding_cost_frontline
    # Promotions carry a raise, not an external onboarding cost
    if not scenario.is_internal_promotion:
        cost += new_peers * resolve(scenario.overrides.onboarding_cost_peer,
                                    hr.onboarding_cost_peer)
    return cost


def transition_cost(scenario: Scenario, g: GlobalAssumptions) -> float:
    """One month of frontline backfill at time-and-a-half while a promotion settles."""
    if not scenario.is_internal_promotion:
        return 0.0
    return scenario.frontline_wage(g) * TRANSITION_OT_MULTIPLIER * CAPACITY_HOURS_PER_FTE


# ══════════════════════════════════════════════════════════════════════════════
# RISK FACTORS
# ══════════════════════════════════════════════════════════════════════════════
def _risk_factors(scenario: Scenario, baseline: Scenario, hr: HRRiskAssumptions,
                  comp: ComplianceResult, peer_rev: float):
    risks = []
    if comp.safety == "Overloaded" or (
            scenario.peer_count > 0 and comp.effective_ratio > hr.turnover_risk_threshold):
        risks.append("High Turnover Risk")

    if comp.required_hours > comp.actual_hours:
        risks.append("Supervision Capacity Shortfall")

    if peer_rev > 0 and hr.credentialing_months > 0:
        risks.append(f"Credentialing Lag ({hr.credentialing_months} mo)")

    ramps = []
    if scenario.frontline_count > baseline.frontline_count:
        ramps.append(hr.recruit_ramp_months_frontline)
    if scenario.peer_count > baseline.peer_count and not scenario.is_internal_promotion:
        ramps.append(hr.recruit_ramp_months_peer)
    if ramps:
        risks.append(f"Recruiting Ramp ({max(ramps)} mo)")
    return risks


# ══════════════════════════════════════════════════════════════════════════════
# METRICS AGGREGATOR
# ══════════════════════════════════════════════════════════════════════════════
def compute_scenario_metrics(scenario: Scenario, g: GlobalAssumptions,
                             rules: SupervisionRules, hr: HRRiskAssumptions,
                             baseline: Scenario,
                             baseline_payroll_loaded: Optional[float] = None,
                             toggles: Optional[SensitivityToggles] = None) -> ComputedMetrics:
    """
    Full metrics record for one scenario against the designated baseline.
    baseline_payroll_loaded: pass a pre-computed value when evaluating a set.
    """
    if toggles is None:
        toggles = SensitivityToggles()
    if baseline_payroll_loaded is None:
        baseline_payroll_loaded = calculate_payroll(baseline, g)[1]
    is_baseline = scenario.id == baseline.id

    # ── 1. Compliance ─────────────────────────────────────────────────────────
    comp  = calculate_compliance(scenario, rules)
    freed = comp.freed_hours

    # ── 2. Payroll ────────────────────────────────────────────────────────────
    payroll_base, payroll_loaded = calculate_payroll(scenario, g)
    payroll_delta = payroll_loaded - baseline_payroll_loaded

    # ── 3. Revenue & grant ────────────────────────────────────────────────────
    lead_rev = lead_revenue(freed, scenario, g)
    peer_rev, peer_billable = peer_revenue(scenario, g)
    # Credentialing risk depends on peers billing at all, not on the toggle
    peer_rev_potential = peer_rev
    grant_savings, grant_units = grant_offset(scenario, g)
    if not toggles.include_revenue:
        lead_rev = peer_rev = 0.0
    realized_revenue = lead_rev + peer_rev

    # ── 4. Labor efficiency (arbitrage) ───────────────────────────────────────
    load = scenario.benefit_load(g)
    arbitrage_per_hr = max(0.0, g.loaded(scenario.lead_wage(g), load)
                                - g.loaded(scenario.peer_wage(g), load))
    labor_efficiency = freed * arbitrage_per_hr

    # ── 5. Anti-double-counting: billed hours are not also cost avoidance ────
    if realized_revenue > 0:
        hard_labor, soft_labor = 0.0, labor_efficiency
    else:
        hard_labor, soft_labor = labor_efficiency, 0.0

    # ── 6. Hard net ───────────────────────────────────────────────────────────
    hard_cash_flow = realized_revenue + grant_savings - payroll_delta
    net_hard       = hard_cash_flow + hard_labor

    # ── 7. Retention (soft) ───────────────────────────────────────────────────
    retention = 0.0
    if not is_baseline and toggles.include_retention:
        cost_per_departure = resolve(scenario.overrides.turnover_cost_per_departure,
                                     hr.turnover_cost_per_departure)
        staff = scenario.frontline_count + scenario.peer_count
        retention = staff * RETENTION_REDUCTION_RATE * cost_per_departure / 12

    # ── 8. Soft & total ───────────────────────────────────────────────────────
    net_soft  = retention + soft_labor
    net_total = net_hard + net_soft

    # ── 9. Annual, one-time, year-one, break-even ─────────────────────────────
    net_annual = net_hard * 12
    onboarding = onboarding_cost(scenario, hr, baseline)
    transition = transition_cost(scenario, g) if toggles.include_transition_cost else 0.0
    one_time   = onboarding + transition
    net_year_one = net_annual - one_time
    break_even = one_time / net_hard if net_hard > 0 else 0.0

    # ── Opportunity cost overlay (hard net unchanged) ─────────────────────────
    opportunity = 0.0
    if toggles.include_opportunity_cost:
        tied_up = max(0.0, scenario.lead_fte * CAPACITY_HOURS_PER_FTE - freed)
        opportunity = tied_up * scenario.utilization(g) * scenario.billable_rate(g)

    # ── Status ────────────────────────────────────────────────────────────────
    compliance_status = comp.status
    if is_baseline:
        compliance_status = "High Risk" if comp.safety == "Overloaded" else "At Capacity"

    risks = _risk_factors(scenario, baseline, hr, comp, peer_rev_potential)

    logger.debug("scenario %s: freed=%.1fh revenue=%.2f hard=%.2f soft=%.2f status=%s",
                 scenario.id, freed, realized_revenue, net_hard, net_soft, compliance_status,
                 extra={"scenario_id": scenario.id})

    return ComputedMetrics(
        scenario_id=scenario.id,
        total_fte=scenario.total_fte,
        payroll_base=payroll_base,
        payroll_loaded=payroll_loaded,
        payroll_delta_loaded=payroll_delta,
        baseline_load_hours=comp.baseline_load,
        scenario_load_hours=comp.scenario_load,
        freed_supervisor_hours=freed,
        realized_revenue=realized_revenue,
        lead_revenue=lead_rev,
        peer_revenue=peer_rev,
        peer_billable_headcount=peer_billable,
        grant_savings=grant_savings,
        grant_fte_used=grant_units,
        labor_efficiency_savings=labor_efficiency,
        hard_labor_savings=hard_labor,
        soft_labor_savings=soft_labor,
        retention_savings=retention,
        hard_monthly_cash_flow=hard_cash_flow,
        net_monthly_hard=net_hard,
        net_monthly_soft=net_soft,
        net_monthly_total=net_total,
        net_annual_steady_state=net_annual,
        onboarding_cost=onboarding,
        transition_cost=transition,
        one_time_cost=one_time,
        net_year_one=net_year_one,
        break_even_months=break_even,
        opportunity_cost_monthly=opportunity,
        net_monthly_hard_with_opportunity=net_hard - opportunity,
        required_hours=comp.required_hours,
        actual_supervision_hours=comp.actual_hours,
        effective_ratio=comp.effective_ratio,
        compliance_status=compliance_status,
        safety_status=comp.safety,
        risk_factors=risks,
    )


def compute_all_metrics(scenarios: Dict[str, Scenario], g: GlobalAssumptions,
                        rules: SupervisionRules, hr: HRRiskAssumptions,
                        baseline_id: str = "A",
                        toggles: Optional[SensitivityToggles] = None) -> Dict[str, ComputedMetrics]:
    """Evaluate every scenario against scenarios[baseline_id]."""
    baseline = scenarios[baseline_id]
    baseline_loaded = calculate_payroll(baseline, g)[1]
    return {
        sid: compute_scenario_metrics(sc, g, rules, hr, baseline,
                                      baseline_loaded, toggles)
        for sid, sc in scenarios.items()
    }
