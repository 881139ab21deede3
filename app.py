"""
SEP — Supervision Economics Planner  v2
Tiered clinical supervision: payroll, freed capacity, revenue and risk
"""

import streamlit as st
import pandas as pd
import plotly.graph_objects as go
from dataclasses import replace

import config
from config import setup_logging
from engine import compute_all_metrics
from analysis import metrics_table, toggle_impact, run_sensitivity, sweep_values, headline
from models import (GlobalAssumptions, SupervisionRules, TieredConfiguration,
                    HRRiskAssumptions, SupervisionModel, SensitivityToggles,
                    default_scenarios)
from persistence import ScenarioStore, StoreError

logger = setup_logging('sep')

# ── Page config ───────────────────────────────────────────────────────────────
st.set_page_config(
    page_title="SEP — Supervision Economics",
    page_icon="🧭",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
[data-testid="stMetricValue"] { font-size: 1.5rem; font-weight: 700; }
h1 { color: #1e3a5f; }
h2 { color: #1e3a5f; border-bottom: 2px solid #3b82f6; padding-bottom:4px; }
h3 { color: #1e3a5f; }
.stTabs [data-baseweb="tab"] { font-size: 0.92rem; font-weight: 600; }
div[data-testid="stExpander"] > div { background: #f8fafc; }
</style>
""", unsafe_allow_html=True)

STATUS_ICONS    = {"OK": "🟢", "At Capacity": "🟡", "Non-Compliant": "🔴",
                   "High Risk": "🔴", "Overloaded": "🔴"}
MODEL_OPTIONS   = [m.value for m in SupervisionModel]

SWEEP_PARAMS = {
    "Lead utilization":       ("global", "lead_utilization",   0.0, 1.0, 0.05),
    "Lead billable rate ($)": ("global", "lead_billable_rate", 50.0, 250.0, 10.0),
    "Peer utilization":       ("global", "peer_utilization",   0.0, 1.0, 0.05),
    "Benefit load":           ("global", "benefit_load",       0.10, 0.50, 0.05),
    "Grant peer slots":       ("global", "grant_slots_peer",   0, 5, 1),
    "Max frontline:peer ratio": ("rules", "internal_max_ratio", 2, 12, 1),
    "Turnover cost ($)":      ("hr", "turnover_cost_per_departure", 1_000, 15_000, 1_000),
}


def fmt_dollar(v):
    if abs(v) >= 1_000_000: return f"${v/1_000_000:.2f}M"
    if abs(v) >= 1_000:     return f"${v/1_000:.1f}K"
    return f"${v:,.0f}"


# ── Session state ─────────────────────────────────────────────────────────────
store = ScenarioStore(config.STORE_PATH)
if "loaded" not in st.session_state:
    st.session_state.global_a  = store.load_global()
    st.session_state.rules     = store.load_rules()
    st.session_state.hr        = store.load_hr()
    st.session_state.scenarios = store.load_scenarios()
    st.session_state.toggles   = store.load_toggles()
    st.session_state.loaded    = True
    logger.info("Loaded assumptions from %s", config.STORE_PATH)


def _tier_inputs(label: str, t: TieredConfiguration, key: str) -> TieredConfiguration:
    st.markdown(f"**{label}**")
    c1, c2 = st.columns(2)
    with c1:
        lead_indiv = st.number_input("Lead indiv hrs/staff", 0.0, 10.0, t.lead_indiv_per_staff, 0.5, key=f"{key}_li")
        lead_grp   = st.number_input("Lead-only group hrs", 0.0, 40.0, t.lead_group_only, 0.5, key=f"{key}_lg")
        co_grp     = st.number_input("Co-facilitated group hrs", 0.0, 40.0, t.group_co_facilitated, 0.5, key=f"{key}_cg")
    with c2:
        peer_indiv = st.number_input("Peer indiv hrs/staff", 0.0, 10.0, t.peer_indiv_per_staff, 0.5, key=f"{key}_pi")
        peer_grp   = st.number_input("Peer-only group hrs", 0.0, 40.0, t.peer_group_only, 0.5, key=f"{key}_pg")
        oversight  = st.number_input("Oversight hrs/peer", 0.0, 20.0, t.oversight_per_peer, 0.5, key=f"{key}_ov")
    return TieredConfiguration(
        lead_indiv_per_staff=lead_indiv, peer_indiv_per_staff=peer_indiv,
        lead_group_only=lead_grp, peer_group_only=peer_grp,
        group_co_facilitated=co_grp, oversight_per_peer=oversight,
    )


# ══════════════════════════════════════════════════════════════════════════════
# SIDEBAR
# ══════════════════════════════════════════════════════════════════════════════
ga, rl, hr = st.session_state.global_a, st.session_state.rules, st.session_state.hr

with st.sidebar:
    st.title("🧭 Assumptions")

    # ── Wages ─────────────────────────────────────────────────────────────────
    with st.expander("💵 Wages & Costs", expanded=True):
        fl_w   = st.number_input("Frontline $/hr", 10.0, 100.0, ga.frontline_base_hourly, 0.5)
        peer_w  = st.number_input("Peer-supervisor $/hr", 10.0, 100.0, ga.peer_base_hourly, 0.5)
        lead_w  = st.number_input("Lead clinician $/hr", 20.0, 200.0, ga.lead_base_hourly, 0.5)
        b_load  = st.slider("Benefit Load", 0.0, 0.60, ga.benefit_load, 0.01)
        fte_hrs = st.number_input("FTE Hours/Month", 80.0, 200.0, ga.fte_hours_per_month, 1.0)

    # ── Revenue ───────────────────────────────────────────────────────────────
    with st.expander("📈 Revenue"):
        lead_rate = st.number_input("Lead billable $/hr", 0.0, 400.0, ga.lead_billable_rate, 5.0)
        lead_util = st.slider("Lead utilization", 0.0, 1.0, ga.lead_utilization, 0.05)
        peer_rate = st.number_input("Peer billable $/hr", 0.0, 200.0, ga.peer_billable_rate, 5.0)
        peer_util = st.slider("Peer utilization", 0.0, 1.0, ga.peer_utilization, 0.05)
        peer_bill = st.checkbox("Peer billing enabled", ga.peer_billing_enabled)
        cred_cap  = st.number_input("Credentialed peer ceiling (0 = none)", 0, 50,
                                    ga.credentialed_peer_ceiling or 0, 1)
        realize   = st.slider("Expected collections (%)", 0.0, 100.0, ga.revenue_realization_pct, 5.0)
        task      = st.text_input("Reinvestment task", ga.reinvestment_task)

    # ── Grant ─────────────────────────────────────────────────────────────────
    with st.expander("🎗️ Grant Funding"):
        g_peer = st.number_input("Grant-funded peer slots", 0, 20, ga.grant_slots_peer, 1)
        g_fl  = st.number_input("Grant-funded frontline slots", 0, 50, ga.grant_slots_frontline, 1)

    # ── Supervision rules ─────────────────────────────────────────────────────
    with st.expander("🩺 Supervision Rules"):
        base_indiv = st.number_input("Baseline indiv hrs/staff", 0.0, 10.0, rl.baseline_indiv_per_staff, 0.5)
        base_group = st.number_input("Baseline group hrs/team", 0.0, 40.0, rl.baseline_group_per_team, 0.5)
        max_ratio  = st.number_input("Max frontline:peer ratio", 1.0, 20.0, rl.internal_max_ratio, 1.0)
        tier_b = _tier_inputs("Configuration B", rl.tiered_b, "tb")
        tier_c = _tier_inputs("Configuration C", rl.tiered_c, "tc")

    # ── HR risk ───────────────────────────────────────────────────────────────
    with st.expander("⚠️ HR Risk"):
        raise_hr   = st.number_input("Promotion raise $/hr", 0.0, 20.0, hr.promotion_raise_per_hour, 0.5)
        cred_mo    = st.number_input("Credentialing months", 0, 24, hr.credentialing_months, 1)
        ramp_fl   = st.number_input("Recruit ramp — frontline (mo)", 0, 12, hr.recruit_ramp_months_frontline, 1)
        ramp_peer  = st.number_input("Recruit ramp — peer (mo)", 0, 12, hr.recruit_ramp_months_peer, 1)
        onb_fl    = st.number_input("Onboarding cost — frontline ($)", 0.0, 50_000.0, hr.onboarding_cost_frontline, 500.0)
        onb_peer   = st.number_input("Onboarding cost — peer ($)", 0.0, 50_000.0, hr.onboarding_cost_peer, 500.0)
        to_cost    = st.number_input("Turnover cost/departure ($)", 0.0, 50_000.0, hr.turnover_cost_per_departure, 500.0)
        to_thresh  = st.number_input("Turnover-risk ratio", 1.0, 20.0, hr.turnover_risk_threshold, 0.5)

    # ── Sensitivity ───────────────────────────────────────────────────────────
    with st.expander("🎛️ Sensitivity (Stress Test)", expanded=True):
        tg = st.session_state.toggles
        inc_rev  = st.toggle("Include Revenue Opportunity", tg.include_revenue)
        inc_ret  = st.toggle("Include Retention Savings", tg.include_retention)
        inc_tr   = st.toggle("Include Year 1 Transition Costs", tg.include_transition_cost)
        inc_opp  = st.toggle("Include Opportunity Cost", tg.include_opportunity_cost)

    save_clicked  = st.button("💾 Save Assumptions", type="primary", use_container_width=True)
    reset_clicked = st.button("↺ Reset to Defaults", use_container_width=True)

# ── Build records ─────────────────────────────────────────────────────────────
g = replace(ga,
            frontline_base_hourly=fl_w, peer_base_hourly=peer_w, lead_base_hourly=lead_w,
            benefit_load=b_load, fte_hours_per_month=fte_hrs,
            lead_billable_rate=lead_rate, lead_utilization=lead_util,
            peer_billable_rate=peer_rate, peer_utilization=peer_util,
            peer_billing_enabled=peer_bill,
            credentialed_peer_ceiling=int(cred_cap) if cred_cap > 0 else None,
            reinvestment_task=task, revenue_realization_pct=realize,
            grant_slots_peer=int(g_peer), grant_slots_frontline=int(g_fl))
rules = SupervisionRules(baseline_indiv_per_staff=base_indiv,
                         baseline_group_per_team=base_group,
                         tiered_b=tier_b, tiered_c=tier_c,
                         internal_max_ratio=max_ratio)
hr = HRRiskAssumptions(promotion_raise_per_hour=raise_hr,
                       credentialing_months=int(cred_mo),
                       recruit_ramp_months_frontline=int(ramp_fl),
                       recruit_ramp_months_peer=int(ramp_peer),
                       onboarding_cost_frontline=onb_fl,
                       onboarding_cost_peer=onb_peer,
                       turnover_cost_per_departure=to_cost,
                       turnover_risk_threshold=to_thresh)
toggles = SensitivityToggles(include_revenue=inc_rev, include_retention=inc_ret,
                             include_transition_cost=inc_tr,
                             include_opportunity_cost=inc_opp)

# ══════════════════════════════════════════════════════════════════════════════
# SCENARIO EDITORS
# ══════════════════════════════════════════════════════════════════════════════
st.title("🧭 SEP — Supervision Economics Planner")
st.caption(f"Baseline vs. tiered supervision · freed lead-clinician time reinvested into "
           f"**{g.reinvestment_task}**")

scenarios = dict(st.session_state.scenarios)
with st.expander("👥 Scenario Staffing", expanded=True):
    cols = st.columns(len(scenarios))
    for col, (sid, sc) in zip(cols, scenarios.items()):
        with col:
            st.markdown(f"**{sid} · {sc.name}**")
            st.caption(sc.description)
            fl   = st.number_input("Frontline", 0, 200, int(sc.frontline_count), 1, key=f"{sid}_fl")
            pr   = st.number_input("Peer-supervisors", 0, 50, int(sc.peer_count), 1, key=f"{sid}_pr")
            lead = st.number_input("Lead FTE", 0.0, 10.0, float(sc.lead_fte), 0.1, key=f"{sid}_ld")
            promo = st.checkbox("Internal promotion", sc.is_internal_promotion, key=f"{sid}_promo")
            model = st.selectbox("Supervision model", MODEL_OPTIONS,
                                 index=MODEL_OPTIONS.index(sc.supervision_model.value),
                                 key=f"{sid}_model")
            scenarios[sid] = replace(sc, frontline_count=fl, peer_count=pr, lead_fte=lead,
                                     is_internal_promotion=promo,
                                     supervision_model=SupervisionModel(model))

# ── Persist ───────────────────────────────────────────────────────────────────
if save_clicked:
    try:
        store.save_global(g)
        store.save_rules(rules)
        store.save_hr(hr)
        store.save_scenarios(scenarios)
        store.save_toggles(toggles)
        st.session_state.update(global_a=g, rules=rules, hr=hr,
                                scenarios=scenarios, toggles=toggles)
        st.success("✅ Assumptions saved")
    except StoreError as e:
        st.error(f"Could not save assumptions: {e}")

if reset_clicked:
    try:
        store.reset()
    except StoreError as e:
        st.error(f"Could not reset saved assumptions: {e}")
    else:
        # Widgets keep their own keyed values; drop them so defaults show
        for key in list(st.session_state.keys()):
            del st.session_state[key]
        st.session_state.update(loaded=True,
                                global_a=GlobalAssumptions(), rules=SupervisionRules(),
                                hr=HRRiskAssumptions(), scenarios=default_scenarios(),
                                toggles=SensitivityToggles())
        st.rerun()

# ══════════════════════════════════════════════════════════════════════════════
# COMPUTE
# ══════════════════════════════════════════════════════════════════════════════
baseline_id = config.BASELINE_ID if config.BASELINE_ID in scenarios else next(iter(scenarios))
metrics = compute_all_metrics(scenarios, g, rules, hr, baseline_id, toggles)
summary_df = metrics_table(metrics, scenarios)
best = headline(metrics, baseline_id)

# ── Recommendation bar ────────────────────────────────────────────────────────
st.subheader("📋 Headline")
c1, c2, c3, c4 = st.columns(4)
if best["best_monthly"] is not None:
    c1.metric("Best Hard Monthly Net", fmt_dollar(best["best_monthly_value"]),
              help=f"Scenario {best['best_monthly']}")
    c2.metric("Best Year-One Net", fmt_dollar(best["best_year_one_value"]),
              help=f"Scenario {best['best_year_one']}")
c3.metric("Baseline Payroll (loaded)", fmt_dollar(metrics[baseline_id].payroll_loaded))
c4.metric("Baseline Supervision Load", f"{metrics[baseline_id].scenario_load_hours:.1f} h/mo")

tabs = st.tabs([
    "🃏 Scenario Cards",
    "📊 Executive Summary",
    "🎛️ Sensitivity",
    "🩺 Compliance",
    "📄 Full Data",
])

# ══════════════════════════════════════════════════════════════════════════════
# TAB 0 — SCENARIO CARDS
# ══════════════════════════════════════════════════════════════════════════════
with tabs[0]:
    cols = st.columns(len(metrics))
    for col, (sid, m) in zip(cols, metrics.items()):
        sc = scenarios[sid]
        with col:
            st.markdown(f"### {sid} · {sc.name}")
            st.caption(f"{sc.label or sc.supervision_model.value}"
                       + (" · tiered" if sc.is_tiered_model else ""))
            st.metric("Hard Monthly Net", fmt_dollar(m.net_monthly_hard))
            st.metric("Soft Monthly Value", fmt_dollar(m.net_monthly_soft))
            st.metric("Payroll Δ (loaded)", fmt_dollar(m.payroll_delta_loaded))
            st.metric("Freed Lead Hours", f"{m.freed_supervisor_hours:.1f} h")
            st.metric("Revenue", fmt_dollar(m.realized_revenue),
                      help=f"Lead {fmt_dollar(m.lead_revenue)} · Peer {fmt_dollar(m.peer_revenue)} · "
                           f"~{fmt_dollar(m.realized_revenue * g.revenue_realization_pct / 100)} "
                           f"collected at {g.revenue_realization_pct:.0f}%")
            if m.grant_savings > 0:
                st.metric("Grant Savings", fmt_dollar(m.grant_savings),
                          help=f"{m.grant_fte_used:.0f} FTE grant-covered")
            st.metric("Year-One Net", fmt_dollar(m.net_year_one),
                      help=f"One-time cost {fmt_dollar(m.one_time_cost)}")
            if toggles.include_opportunity_cost:
                st.metric("Net Monthly Economic", fmt_dollar(m.net_monthly_hard_with_opportunity),
                          help=f"Opportunity cost {fmt_dollar(m.opportunity_cost_monthly)}")
            st.write(f"{STATUS_ICONS.get(m.compliance_status, '⚪')} {m.compliance_status} · "
                     f"{STATUS_ICONS.get(m.safety_status, '⚪')} {m.safety_status}")
            for r in m.risk_factors:
                st.warning(r)

# ══════════════════════════════════════════════════════════════════════════════
# TAB 1 — EXECUTIVE SUMMARY
# ══════════════════════════════════════════════════════════════════════════════
with tabs[1]:
    st.subheader("Monthly Net — Hard vs Soft")
    ids = list(metrics)
    fig = go.Figure()
    fig.add_bar(x=ids, y=[metrics[s].net_monthly_hard for s in ids],
                name="Hard (cash)", marker_color="#3b82f6")
    fig.add_bar(x=ids, y=[metrics[s].net_monthly_soft for s in ids],
                name="Soft (operational)", marker_color="#10b981")
    if toggles.include_opportunity_cost:
        fig.add_scatter(x=ids, y=[metrics[s].net_monthly_hard_with_opportunity for s in ids],
                        name="Net Economic", mode="markers",
                        marker=dict(size=14, color="#ef4444", symbol="diamond"))
    fig.add_hline(y=0, line_dash="dot", line_color="#9ca3af")
    fig.update_layout(height=380, template="plotly_white", barmode="relative",
                      legend=dict(orientation="h", y=-0.2),
                      yaxis=dict(tickformat="$,.0f"))
    st.plotly_chart(fig, use_container_width=True)

    money_cols = ["payroll_loaded", "payroll_delta", "realized_revenue", "grant_savings",
                  "net_monthly_hard", "net_monthly_soft", "net_monthly_total",
                  "net_annual", "one_time_cost", "net_year_one"]
    st.dataframe(summary_df[["scenario", "name"] + money_cols + ["break_even_months"]]
                 .style.format({c: "${:,.0f}" for c in money_cols} | {"break_even_months": "{:.1f}"}),
                 use_container_width=True, hide_index=True)

# ══════════════════════════════════════════════════════════════════════════════
# TAB 2 — SENSITIVITY
# ══════════════════════════════════════════════════════════════════════════════
with tabs[2]:
    st.subheader("Toggle Impact")
    st.caption("Change in each net when only that factor is switched off.")
    impact_df = toggle_impact(scenarios, g, rules, hr, baseline_id, toggles)
    if impact_df.empty:
        st.info("All sensitivity factors are already off.")
    else:
        st.dataframe(impact_df, use_container_width=True, hide_index=True)

    st.subheader("Parameter Sweep")
    s1, s2 = st.columns(2)
    with s1:
        sweep_label = st.selectbox("Parameter", list(SWEEP_PARAMS))
    with s2:
        sweep_sid = st.selectbox("Scenario", [s for s in scenarios if s != baseline_id] or list(scenarios))
    section, param, lo, hi, step = SWEEP_PARAMS[sweep_label]
    sweep_df = run_sensitivity(sweep_sid, section, param, sweep_values(lo, hi, step),
                               scenarios, g, rules, hr, baseline_id, toggles)
    fig_s = go.Figure()
    fig_s.add_scatter(x=sweep_df["value"], y=sweep_df["net_monthly_hard"],
                      name="Hard monthly net", mode="lines+markers",
                      line=dict(color="#3b82f6", width=3))
    fig_s.add_scatter(x=sweep_df["value"], y=sweep_df["net_monthly_total"],
                      name="Total monthly net", mode="lines",
                      line=dict(color="#10b981", width=2, dash="dash"))
    fig_s.add_hline(y=0, line_dash="dot", line_color="#9ca3af")
    fig_s.update_layout(height=360, template="plotly_white", title=sweep_label,
                        legend=dict(orientation="h", y=-0.2),
                        yaxis=dict(tickformat="$,.0f"))
    st.plotly_chart(fig_s, use_container_width=True)

# ══════════════════════════════════════════════════════════════════════════════
# TAB 3 — COMPLIANCE
# ══════════════════════════════════════════════════════════════════════════════
with tabs[3]:
    st.subheader("Supervision Hours & Ratio")
    comp_rows = []
    for sid, m in metrics.items():
        comp_rows.append({
            "Scenario":             sid,
            "Lead Load (today)":    f"{m.baseline_load_hours:.1f}",
            "Lead Load (scenario)": f"{m.scenario_load_hours:.1f}",
            "Freed Hours":          f"{m.freed_supervisor_hours:.1f}",
            "Required Hours":       f"{m.required_hours:.1f}",
            "Capacity Hours":       f"{m.actual_supervision_hours:.0f}",
            "Frontline:Peer":       f"{m.effective_ratio:.1f}" if m.effective_ratio else "—",
            "Safety":               m.safety_status,
            "Compliance":           m.compliance_status,
            "Risks":                ", ".join(m.risk_factors) or "—",
        })
    st.dataframe(pd.DataFrame(comp_rows), use_container_width=True, hide_index=True)
    st.caption(f"Max safe ratio: {rules.internal_max_ratio:.0f} frontline per peer-supervisor · "
               f"turnover risk above {hr.turnover_risk_threshold:.0f}")

# ══════════════════════════════════════════════════════════════════════════════
# TAB 4 — FULL DATA
# ══════════════════════════════════════════════════════════════════════════════
with tabs[4]:
    st.subheader("📄 All Metrics")
    st.dataframe(summary_df, use_container_width=True, hide_index=True)
    st.download_button("⬇️ Download CSV", summary_df.to_csv(index=False),
                       "sep_scenario_metrics.csv", "text/csv")
