from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Sequence

from core.charts import achievement_chart, budget_trend_chart, to_vega_spec
from core.data import MonthlyRecord, select_months
from core.filters import DashboardFilters, fiscal_month_order
from core.formatting import achievement_rate, classify_badge, format_currency


def _metric_page(
    filters: DashboardFilters,
    records: Sequence[MonthlyRecord],
    *,
    actual_field: str,
    budget_field: str,
    achievement_field: str,
    reverse_colors: bool,
    trend_key: str,
    achievement_title: str,
) -> Dict[str, Any]:
    """Rows, totals and charts for one budget metric."""
    selected = select_months(records, filters.selected_months)
    threshold = filters.thresholds.badge

    rows = []
    for r in selected:
        actual, budget, achievement = getattr(r, actual_field), getattr(r, budget_field), getattr(r, achievement_field)
        rows.append(
            {
                "month": r.month,
                "actual": actual,
                "budget": budget,
                "actual_display": format_currency(actual),
                "budget_display": format_currency(budget),
                "achievement": achievement,
                "badge": classify_badge(achievement, threshold, reverse_colors=reverse_colors).to_dict(),
            }
        )

    actual_total = sum(row["actual"] for row in rows)
    budget_total = sum(row["budget"] for row in rows)
    rate = achievement_rate(actual_total, budget_total)
    totals = {
        "actual": actual_total,
        "budget": budget_total,
        "actual_display": format_currency(actual_total),
        "budget_display": format_currency(budget_total),
        "achievement": rate,
        "badge": classify_badge(rate, threshold, reverse_colors=reverse_colors).to_dict() if rate is not None else None,
    }

    charts: Dict[str, Any] = {}
    if selected:
        trend = [
            {"month": row["month"], "order": fiscal_month_order(row["month"]), "actual": row["actual"], "budget": row["budget"]}
            for row in rows
        ]
        achievement = [
            {"month": row["month"], "order": fiscal_month_order(row["month"]), "achievement": row["achievement"]}
            for row in rows
        ]
        charts = {
            trend_key: to_vega_spec(budget_trend_chart(trend)),
            "achievement": to_vega_spec(
                achievement_chart(achievement, threshold=threshold, reverse_colors=reverse_colors, title=achievement_title)
            ),
        }

    return {
        "filters": asdict(filters),
        "rows": rows,
        "totals": totals if selected else None,
        "charts": charts,
    }


def compute_costs(filters: DashboardFilters, records: Sequence[MonthlyRecord]) -> Dict[str, Any]:
    # spending under budget is the good outcome
    return _metric_page(
        filters,
        records,
        actual_field="actual_costs",
        budget_field="budget_costs",
        achievement_field="costs_achievement",
        reverse_colors=True,
        trend_key="costs_trend",
        achievement_title="費用消化率",
    )


def compute_profits(filters: DashboardFilters, records: Sequence[MonthlyRecord]) -> Dict[str, Any]:
    return _metric_page(
        filters,
        records,
        actual_field="actual_profit",
        budget_field="budget_profit",
        achievement_field="profit_achievement",
        reverse_colors=False,
        trend_key="profit_trend",
        achievement_title="利益達成率",
    )
