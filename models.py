"""
SEP Records — v2
Assumption, scenario and metrics records for the supervision economics model.

All records are plain dataclasses with defaults that reproduce the shipped
assumption set.  The engine only reads them; the UI / store layer creates
and mutates them.
"""

from dataclasses import dataclass, field, asdict
from enum import StrEnum
from typing import List, Dict, Optional, Any

# Monthly hours used for supervision capacity and the promotion backfill
# bridge.  Kept apart from GlobalAssumptions.fte_hours_per_month on purpose:
# capacity is a calendar cap, fte_hours_per_month is paid time.
CAPACITY_HOURS_PER_FTE = 160.0

# Retention model: assumed annual turnover reduction from a career ladder.
RETENTION_REDUCTION_RATE = 0.10

# Transition bridge: one month of frontline backfill at time-and-a-half.
TRANSITION_OT_MULTIPLIER = 1.5


def resolve(override: Optional[float], default: float) -> float:
    """Scenario override wins over the global default when it is set."""
    return default if override is None else override


# ══════════════════════════════════════════════════════════════════════════════
# SUPERVISION MODEL VARIANT
# ══════════════════════════════════════════════════════════════════════════════
class SupervisionModel(StrEnum):
    """Which supervision structure a scenario runs under."""

    BASELINE = "Baseline"
    CONFIG_B = "ConfigurationB"
    CONFIG_C = "ConfigurationC"

    @property
    def is_tiered(self) -> bool:
        return self is not SupervisionModel.BASELINE


# ══════════════════════════════════════════════════════════════════════════════
# GLOBAL ASSUMPTIONS
# ══════════════════════════════════════════════════════════════════════════════
@dataclass
class GlobalAssumptions:
    # ── Wages & Costs ─────────────────────────────────────────────────────────
    frontline_base_hourly: float = 24.00
    peer_base_hourly:      float = 28.50
    lead_base_hourly:      float = 45.00
    benefit_load:          float = 0.35    # 0.35 = 35% on top of every wage
    fte_hours_per_month:   float = 160.0

    # ── Grant Funding ─────────────────────────────────────────────────────────
    # First N positions per role are fully grant-covered ("first-in priority")
    grant_slots_peer:      int = 0
    grant_slots_frontline: int = 0

    # ── Lead Clinician Revenue ────────────────────────────────────────────────
    lead_billable_rate:      float = 135.0   # 90837 outpatient session
    lead_utilization:        float = 0.65
    revenue_realization_pct: float = 95.0    # display only

    # ── Peer Revenue (gap-fill) ───────────────────────────────────────────────
    peer_billable_rate:        float = 55.0
    peer_utilization:          float = 0.0   # conservative: off until enabled
    peer_billing_enabled:      bool = True
    credentialed_peer_ceiling: Optional[int] = None   # None = no cap

    # ── Context ───────────────────────────────────────────────────────────────
    reinvestment_task: str = "Outpatient Counseling"

    def loaded(self, hourly: float, benefit_load: Optional[float] = None) -> float:
        """Fully loaded hourly cost."""
        return hourly * (1.0 + resolve(benefit_load, self.benefit_load))


# ══════════════════════════════════════════════════════════════════════════════
# SUPERVISION RULES
# ══════════════════════════════════════════════════════════════════════════════
@dataclass
class TieredConfiguration:
    lead_indiv_per_staff: float = 1.0   # hrs the lead clinician KEEPS
    peer_indiv_per_staff: float = 1.0   # hrs delegated to the peer-supervisor
    lead_group_only:      float = 0.0   # group hrs the lead runs alone
    peer_group_only:      float = 2.0   # group hrs the peer runs alone
    group_co_facilitated: float = 0.0   # both attend
    oversight_per_peer:   float = 1.0   # lead hrs managing each peer

    @property
    def lead_group_hours(self) -> float:
        return self.lead_group_only + self.group_co_facilitated

    @property
    def all_group_hours(self) -> float:
        return self.lead_group_only + self.peer_group_only + self.group_co_facilitated


@dataclass
class SupervisionRules:
    baseline_indiv_per_staff: float = 2.0
    baseline_group_per_team:  float = 2.0
    tiered_b: TieredConfiguration = field(default_factory=TieredConfiguration)
    tiered_c: TieredConfiguration = field(default_factory=TieredConfiguration)
    internal_max_ratio: float = 5.0

    def tiered_config(self, model: SupervisionModel) -> Optional[TieredConfiguration]:
        model = SupervisionModel(model)
        if model is SupervisionModel.CONFIG_B:
            return self.tiered_b
        if model is SupervisionModel.CONFIG_C:
            return self.tiered_c
        return None


# ══════════════════════════════════════════════════════════════════════════════
# HR RISK
# ══════════════════════════════════════════════════════════════════════════════
@dataclass
class HRRiskAssumptions:
    promotion_raise_per_hour:    float = 2.0
    credentialing_months:        int   = 3
    recruit_ramp_months_frontline: int = 1
    recruit_ramp_months_peer:      int = 3
    onboarding_cost_frontline:   float = 2_500.0
    onboarding_cost_peer:        float = 5_000.0
    turnover_cost_per_departure: float = 5_000.0
    turnover_risk_threshold:     float = 6.0    # ratio above which turnover risk is flagged


# ══════════════════════════════════════════════════════════════════════════════
# SCENARIO
# ══════════════════════════════════════════════════════════════════════════════
@dataclass
class ScenarioOverrides:
    frontline_wage: Optional[float] = None
    peer_wage:      Optional[float] = None
    lead_wage:      Optional[float] = None
    billable_rate:  Optional[float] = None
    utilization:    Optional[float] = None
    benefit_load:   Optional[float] = None
    onboarding_cost_peer:        Optional[float] = None
    turnover_cost_per_departure: Optional[float] = None


@dataclass
class Scenario:
    id:          str
    name:        str
    description: str = ""
    label:       str = ""
    frontline_count: float = 0
    peer_count:      float = 0
    lead_fte:        float = 1.0
    is_internal_promotion: bool = False
    supervision_model: SupervisionModel = SupervisionModel.BASELINE
    overrides: ScenarioOverrides = field(default_factory=ScenarioOverrides)

    def __post_init__(self):
        # Saved records and hand-built scenarios may carry the plain string value
        self.supervision_model = SupervisionModel(self.supervision_model)

    @property
    def is_tiered_model(self) -> bool:
        return self.supervision_model.is_tiered

    @property
    def total_fte(self) -> float:
        return self.frontline_count + self.peer_count + self.lead_fte

    # ── Resolved rates (override > global) ────────────────────────────────────
    def frontline_wage(self, g: GlobalAssumptions) -> float:
        return resolve(self.overrides.frontline_wage, g.frontline_base_hourly)

    def peer_wage(self, g: GlobalAssumptions) -> float:
        return resolve(self.overrides.peer_wage, g.peer_base_hourly)

    def lead_wage(self, g: GlobalAssumptions) -> float:
        return resolve(self.overrides.lead_wage, g.lead_base_hourly)

    def benefit_load(self, g: GlobalAssumptions) -> float:
        return resolve(self.overrides.benefit_load, g.benefit_load)

    def billable_rate(self, g: GlobalAssumptions) -> float:
        return resolve(self.overrides.billable_rate, g.lead_billable_rate)

    def utilization(self, g: GlobalAssumptions) -> float:
        return resolve(self.overrides.utilization, g.lead_utilization)


# ══════════════════════════════════════════════════════════════════════════════
# SENSITIVITY TOGGLES
# ══════════════════════════════════════════════════════════════════════════════
@dataclass
class SensitivityToggles:
    include_revenue:          bool = True
    include_retention:        bool = True
    include_transition_cost:  bool = True
    include_opportunity_cost: bool = False


TOGGLE_LABELS = {
    "include_revenue":          "Revenue Opportunity",
    "include_retention":        "Retention Savings",
    "include_transition_cost":  "Year 1 Transition Costs",
    "include_opportunity_cost": "Opportunity Cost",
}


# ══════════════════════════════════════════════════════════════════════════════
# COMPUTED METRICS
# ══════════════════════════════════════════════════════════════════════════════
@dataclass
class ComputedMetrics:
    scenario_id: str

    # Payroll
    total_fte:            float
    payroll_base:         float
    payroll_loaded:       float
    payroll_delta_loaded: float

    # Capacity
    baseline_load_hours:    float
    scenario_load_hours:    float
    freed_supervisor_hours: float

    # Revenue & offsets
    realized_revenue:        float   # lead + peer
    lead_revenue:            float
    peer_revenue:            float
    peer_billable_headcount: float
    grant_savings:           float
    grant_fte_used:          float

    # Labor efficiency (arbitrage) split
    labor_efficiency_savings: float
    hard_labor_savings:       float   # only when revenue == 0
    soft_labor_savings:       float   # only when revenue > 0
    retention_savings:        float

    # Monthly / annual
    hard_monthly_cash_flow: float
    net_monthly_hard:       float
    net_monthly_soft:       float
    net_monthly_total:      float
    net_annual_steady_state: float

    # One-time
    onboarding_cost:    float
    transition_cost:    float
    one_time_cost:      float
    net_year_one:       float
    break_even_months:  float

    # Opportunity cost overlay
    opportunity_cost_monthly:          float
    net_monthly_hard_with_opportunity: float

    # Compliance & risk
    required_hours:           float
    actual_supervision_hours: float
    effective_ratio:          float
    compliance_status: str    # OK | Non-Compliant | High Risk | At Capacity
    safety_status:     str    # OK | Overloaded
    risk_factors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ══════════════════════════════════════════════════════════════════════════════
# DEFAULTS
# ══════════════════════════════════════════════════════════════════════════════
def default_scenarios() -> Dict[str, Scenario]:
    return {
        "A": Scenario(
            id="A", name="Baseline", label="Current State",
            description="Current staffing model with the lead clinician providing all supervision.",
            frontline_count=3, peer_count=0, lead_fte=1.0,
            is_internal_promotion=False,
            supervision_model=SupervisionModel.BASELINE,
        ),
        "B": Scenario(
            id="B", name="Internal Promotion", label="Headcount Neutral",
            description="Promote 1 frontline worker to peer-supervisor. Total staff count stays constant.",
            frontline_count=2, peer_count=1, lead_fte=1.0,
            is_internal_promotion=True,
            supervision_model=SupervisionModel.CONFIG_B,
        ),
        "C": Scenario(
            id="C", name="External Hire", label="Growth Model",
            description="Hire 1 new peer-supervisor externally. Total staff count increases.",
            frontline_count=3, peer_count=1, lead_fte=1.0,
            is_internal_promotion=False,
            supervision_model=SupervisionModel.CONFIG_C,
        ),
    }
