from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

from core.charts import achievement_chart, budget_trend_chart, to_vega_spec
from core.data import MonthlyRecord, select_months
from core.filters import DashboardFilters, fiscal_month_order
from core.formatting import (
    achievement_rate,
    classify_badge,
    format_currency,
    format_percentage,
    kpi_change,
    round_half_up,
)


def _pct_change(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    if current is None or previous in (None, 0):
        return None
    return round_half_up((current - previous) / previous * 100, 1)


def _kpi_card(
    title: str, value: str, change: Optional[float], change_label: str, *, unit: str = "%", **extra: Any
) -> Dict[str, Any]:
    card: Dict[str, Any] = {
        "title": title,
        "value": value,
        "change": asdict(kpi_change(change, unit)) if change is not None else None,
        "change_label": change_label,
    }
    card.update(extra)
    return card


def compute_overview(filters: DashboardFilters, records: Sequence[MonthlyRecord]) -> Dict[str, Any]:
    selected = select_months(records, filters.selected_months)
    threshold = filters.thresholds.badge
    latest = selected[-1] if selected else None
    prev = selected[-2] if len(selected) >= 2 else None

    totals = {
        "actual_sales": sum(r.actual_sales for r in selected),
        "budget_sales": sum(r.budget_sales for r in selected),
        "actual_costs": sum(r.actual_costs for r in selected),
        "budget_costs": sum(r.budget_costs for r in selected),
        "actual_profit": sum(r.actual_profit for r in selected),
        "budget_profit": sum(r.budget_profit for r in selected),
    }
    totals["sales_achievement"] = achievement_rate(totals["actual_sales"], totals["budget_sales"])
    totals["costs_achievement"] = achievement_rate(totals["actual_costs"], totals["budget_costs"])
    totals["profit_achievement"] = achievement_rate(totals["actual_profit"], totals["budget_profit"])

    def change(field_name: str) -> Optional[float]:
        if latest is None or prev is None:
            return None
        return _pct_change(getattr(latest, field_name), getattr(prev, field_name))

    def point_change(field_name: str) -> Optional[float]:
        if latest is None or prev is None:
            return None
        return round_half_up(getattr(latest, field_name) - getattr(prev, field_name), 1)

    label = filters.kpi_change_label
    kpis: List[Dict[str, Any]] = []
    if latest is not None:
        kpis = [
            _kpi_card("売上高", format_currency(latest.actual_sales), change("actual_sales"), label, month=latest.month),
            _kpi_card("費用", format_currency(latest.actual_costs), change("actual_costs"), label, month=latest.month),
            _kpi_card("利益", format_currency(latest.actual_profit), change("actual_profit"), label, month=latest.month),
            _kpi_card(
                "売上達成率",
                format_percentage(latest.sales_achievement),
                point_change("sales_achievement"),
                label,
                unit="pt",
                month=latest.month,
                badge=classify_badge(latest.sales_achievement, threshold).to_dict(),
            ),
        ]

    summary_badges = {
        "sales": classify_badge(totals["sales_achievement"], threshold).to_dict() if totals["sales_achievement"] is not None else None,
        "costs": (
            classify_badge(totals["costs_achievement"], threshold, reverse_colors=True).to_dict()
            if totals["costs_achievement"] is not None
            else None
        ),
        "profit": classify_badge(totals["profit_achievement"], threshold).to_dict() if totals["profit_achievement"] is not None else None,
    }

    charts: Dict[str, Any] = {}
    if selected:
        sales_points = [
            {"month": r.month, "order": fiscal_month_order(r.month), "actual": r.actual_sales, "budget": r.budget_sales}
            for r in selected
        ]
        profit_points = [
            {"month": r.month, "order": fiscal_month_order(r.month), "actual": r.actual_profit, "budget": r.budget_profit}
            for r in selected
        ]
        achievement_points = [
            {"month": r.month, "order": fiscal_month_order(r.month), "achievement": r.sales_achievement}
            for r in selected
        ]
        charts = {
            "sales_trend": to_vega_spec(budget_trend_chart(sales_points)),
            "profit_trend": to_vega_spec(budget_trend_chart(profit_points)),
            "sales_achievement": to_vega_spec(achievement_chart(achievement_points, threshold=threshold)),
        }

    return {
        "filters": asdict(filters),
        "period": {
            "months": [r.month for r in selected],
            "latest_month": latest.month if latest else None,
            "prev_month": prev.month if prev else None,
        },
        "kpis": kpis,
        "totals": totals,
        "totals_display": {
            "actual_sales": format_currency(totals["actual_sales"]),
            "actual_costs": format_currency(totals["actual_costs"]),
            "actual_profit": format_currency(totals["actual_profit"]),
        },
        "badges": summary_badges,
        "charts": charts,
    }
