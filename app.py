import asyncio
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from core.data import available_months, records_to_frame, select_months
from core.filters import normalize_filters
from core.metrics_budget import compute_budget_comparison
from core.metrics_costs import compute_costs, compute_profits
from core.metrics_heatmap import compute_heatmap
from core.metrics_overview import compute_overview
from core.metrics_sales import compute_sales
from core.sources import default_source
from core.store import LoadStatus, MetricsStore

BAND_STYLES = {
    "excellent": "background-color:#d1fae5;color:#064e3b;",
    "good": "background-color:#ecfdf5;color:#065f46;",
    "fair": "background-color:#fefce8;color:#854d0e;",
    "caution": "background-color:#fff7ed;color:#9a3412;",
    "poor": "background-color:#fff1f2;color:#9f1239;",
}
BADGE_COLORS = {True: "#047857", False: "#be123c"}


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .badge {border-radius: 6px;padding: 2px 8px;font-weight: 500;font-size: 0.85rem;border: 1px solid #e5e7eb;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def badge_html(badge: Optional[Dict[str, Any]]) -> str:
    if not badge:
        return ""
    color = BADGE_COLORS[bool(badge["positive"])]
    return f"<span class='badge' style='color:{color};'>{badge['label']}</span>"


def get_store() -> MetricsStore:
    if "store" not in st.session_state:
        st.session_state["store"] = MetricsStore(default_source())
    return st.session_state["store"]


def ensure_loaded(store: MetricsStore, force: bool = False) -> None:
    if force or (not store.records and store.status == LoadStatus.IDLE):
        with st.spinner("Loading monthly data..."):
            asyncio.run(store.load())


# ---------- Pages ----------
def render_overview(payload: Dict[str, Any]):
    kpis = payload["kpis"]
    if not kpis:
        st.info("No months selected.")
        return
    cols = st.columns(len(kpis))
    for col, kpi in zip(cols, kpis):
        change = kpi["change"]
        delta = f"{'+' if change['direction'] == 'up' else '-'}{change['label']} {kpi['change_label']}" if change else None
        col.metric(f"{kpi['title']} ({kpi['month']}月)", kpi["value"], delta=delta)

    badges = payload["badges"]
    st.markdown(
        "期間合計 達成率: 売上 " + badge_html(badges["sales"]) + " 費用 " + badge_html(badges["costs"]) + " 利益 " + badge_html(badges["profit"]),
        unsafe_allow_html=True,
    )
    c1, c2 = st.columns(2)
    with c1:
        with card("売上推移"):
            st.vega_lite_chart(payload["charts"]["sales_trend"], use_container_width=True)
    with c2:
        with card("売上達成率"):
            st.vega_lite_chart(payload["charts"]["sales_achievement"], use_container_width=True)
    with card("利益推移"):
        st.vega_lite_chart(payload["charts"]["profit_trend"], use_container_width=True)


def render_budget_comparison(payload: Dict[str, Any]):
    rows: List[Dict[str, Any]] = payload["rows"]
    if payload["totals"]:
        rows = rows + [payload["totals"]]
    header = (
        "<tr><th rowspan=2>月</th><th colspan=3>売上</th><th colspan=3>費用</th><th colspan=3>利益</th></tr>"
        "<tr><th>実績</th><th>予算</th><th>達成率</th><th>実績</th><th>予算</th><th>消化率</th><th>実績</th><th>予算</th><th>達成率</th></tr>"
    )
    body = []
    for row in rows:
        cells = [f"<td>{row['month']}</td>"]
        for key in ("sales", "costs", "profit"):
            cell = row[key]
            if cell is None:
                cells.append("<td></td><td></td><td></td>")
                continue
            cells.append(f"<td>{cell['actual_display']}</td><td>{cell['budget_display']}</td><td>{badge_html(cell['badge'])}</td>")
        body.append("<tr>" + "".join(cells) + "</tr>")
    with card("予実比較"):
        st.markdown(f"<table>{header}{''.join(body)}</table>", unsafe_allow_html=True)


def render_sales(payload: Dict[str, Any]):
    table = pd.DataFrame(
        [
            {
                "月": r["month"],
                "契約獲得": r["contract_sales_display"],
                "月次按分": r["monthly_sales_display"],
                "予算": r["budget_sales_display"],
                "達成率": r["badge"]["label"],
            }
            for r in payload["rows"]
        ]
    )
    with card("売上明細"):
        st.dataframe(table, hide_index=True, use_container_width=True)
    if payload["charts"]:
        with card("売上推移"):
            st.vega_lite_chart(payload["charts"]["sales_trend"], use_container_width=True)
        with card("達成率"):
            st.vega_lite_chart(payload["charts"]["achievement"], use_container_width=True)


def render_metric_page(payload: Dict[str, Any], *, title: str, trend_key: str, trend_title: str, rate_title: str):
    rows = payload["rows"] + ([dict(payload["totals"], month="合計")] if payload["totals"] else [])
    body = "".join(
        f"<tr><td>{r['month']}</td><td>{r['actual_display']}</td><td>{r['budget_display']}</td><td>{badge_html(r['badge'])}</td></tr>"
        for r in rows
        if r["badge"] is not None
    )
    header = f"<tr><th>月</th><th>実績</th><th>予算</th><th>{rate_title}</th></tr>"
    with card(title):
        st.markdown(f"<table>{header}{body}</table>", unsafe_allow_html=True)
    if payload["charts"]:
        c1, c2 = st.columns(2)
        with c1:
            with card(trend_title):
                st.vega_lite_chart(payload["charts"][trend_key], use_container_width=True)
        with c2:
            with card(rate_title):
                st.vega_lite_chart(payload["charts"]["achievement"], use_container_width=True)


def render_heatmap(payload: Dict[str, Any]):
    header = "<tr><th>月</th>" + "".join(f"<th>{c['title']}</th>" for c in payload["columns"]) + "</tr>"
    body = []
    for row in payload["rows"]:
        cells = [f"<td>{row['month']}</td>"]
        for c in payload["columns"]:
            cell = row[c["key"]]
            cells.append(f"<td style='text-align:center;font-weight:500;{BAND_STYLES[cell['band']]}'>{cell['label']}</td>")
        body.append("<tr>" + "".join(cells) + "</tr>")
    with card("達成率ヒートマップ"):
        st.markdown(f"<table>{header}{''.join(body)}</table>", unsafe_allow_html=True)


# ---------- UI setup ----------
st.set_page_config(page_title="Management Dashboard", layout="wide")
inject_base_styles()
st.title("経営ダッシュボード")

store = get_store()
ensure_loaded(store)

with st.sidebar:
    st.markdown("### Navigate")
    page = st.radio("Navigate", ["Overview", "Budget vs Actual", "Sales", "Costs", "Profits", "Heatmap"], index=0)
    if st.button("Reload data"):
        ensure_loaded(store, force=True)

    months = available_months(store.records)
    st.markdown("---")
    selected_months = st.multiselect("Months", options=months, default=months)
    with st.expander("Thresholds", expanded=False):
        badge_threshold = st.number_input("Achievement badge threshold (%)", min_value=0.0, value=100.0, step=1.0)

if store.status == LoadStatus.ERROR:
    st.error(f"Failed to load data: {store.error}")
    st.stop()

filters = normalize_filters(
    {"selected_months": selected_months, "thresholds": {"badge": badge_threshold}},
    available_months=months,
)

if page == "Overview":
    render_overview(compute_overview(filters, store.records))
elif page == "Budget vs Actual":
    render_budget_comparison(compute_budget_comparison(filters, store.records))
elif page == "Sales":
    render_sales(compute_sales(filters, store.records))
elif page == "Costs":
    render_metric_page(
        compute_costs(filters, store.records), title="費用明細", trend_key="costs_trend", trend_title="費用推移", rate_title="消化率"
    )
elif page == "Profits":
    render_metric_page(
        compute_profits(filters, store.records), title="利益明細", trend_key="profit_trend", trend_title="利益推移", rate_title="達成率"
    )
else:
    render_heatmap(compute_heatmap(filters, store.records))

st.download_button(
    "Export CSV",
    data=records_to_frame(select_months(store.records, filters.selected_months)).to_csv(index=False).encode("utf-8"),
    file_name="monthly_records.csv",
    mime="text/csv",
)
