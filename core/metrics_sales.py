from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Sequence

from core.charts import achievement_chart, budget_trend_chart, to_vega_spec
from core.data import MonthlyRecord, select_months
from core.filters import DashboardFilters, fiscal_month_order
from core.formatting import classify_badge, format_currency


def compute_sales(filters: DashboardFilters, records: Sequence[MonthlyRecord]) -> Dict[str, Any]:
    selected = select_months(records, filters.selected_months)
    threshold = filters.thresholds.badge

    rows = [
        {
            "month": r.month,
            "contract_sales": r.contract_sales,
            "monthly_sales": r.monthly_sales,
            "budget_sales": r.budget_sales,
            "contract_sales_display": format_currency(r.contract_sales),
            "monthly_sales_display": format_currency(r.monthly_sales),
            "budget_sales_display": format_currency(r.budget_sales),
            "achievement": r.sales_achievement,
            "badge": classify_badge(r.sales_achievement, threshold).to_dict(),
        }
        for r in selected
    ]

    charts: Dict[str, Any] = {}
    if selected:
        trend = [
            {"month": r.month, "order": fiscal_month_order(r.month), "actual": r.actual_sales, "budget": r.budget_sales}
            for r in selected
        ]
        achievement = [
            {"month": r.month, "order": fiscal_month_order(r.month), "achievement": r.sales_achievement}
            for r in selected
        ]
        charts = {
            "sales_trend": to_vega_spec(budget_trend_chart(trend)),
            "achievement": to_vega_spec(achievement_chart(achievement, threshold=threshold)),
        }

    return {
        "filters": asdict(filters),
        "rows": rows,
        "totals": {
            "contract_sales": sum(r.contract_sales for r in selected),
            "monthly_sales": sum(r.monthly_sales for r in selected),
            "budget_sales": sum(r.budget_sales for r in selected),
        },
        "charts": charts,
    }
