from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Sequence

from core.data import MonthlyRecord, select_months
from core.filters import DashboardFilters
from core.formatting import achievement_rate, classify_badge, format_currency

# (key, actual field, budget field, achievement field, lower is better)
METRICS = [
    ("sales", "actual_sales", "budget_sales", "sales_achievement", False),
    ("costs", "actual_costs", "budget_costs", "costs_achievement", True),
    ("profit", "actual_profit", "budget_profit", "profit_achievement", False),
]


def _cell(actual: float, budget: float, achievement: float, threshold: float, reverse: bool) -> Dict[str, Any]:
    return {
        "actual": actual,
        "budget": budget,
        "actual_display": format_currency(actual),
        "budget_display": format_currency(budget),
        "achievement": achievement,
        "badge": classify_badge(achievement, threshold, reverse_colors=reverse).to_dict(),
    }


def budget_comparison_row(record: MonthlyRecord, threshold: float = 100) -> Dict[str, Any]:
    row: Dict[str, Any] = {"month": record.month}
    for key, actual_f, budget_f, ach_f, reverse in METRICS:
        row[key] = _cell(getattr(record, actual_f), getattr(record, budget_f), getattr(record, ach_f), threshold, reverse)
    return row


def compute_budget_comparison(filters: DashboardFilters, records: Sequence[MonthlyRecord]) -> Dict[str, Any]:
    selected = select_months(records, filters.selected_months)
    threshold = filters.thresholds.badge
    rows: List[Dict[str, Any]] = [budget_comparison_row(r, threshold) for r in selected]

    totals: Dict[str, Any] = {"month": "合計"}
    for key, actual_f, budget_f, _, reverse in METRICS:
        actual = sum(getattr(r, actual_f) for r in selected)
        budget = sum(getattr(r, budget_f) for r in selected)
        rate = achievement_rate(actual, budget)
        totals[key] = _cell(actual, budget, rate, threshold, reverse) if rate is not None else None

    return {
        "filters": asdict(filters),
        "rows": rows,
        "totals": totals if selected else None,
    }
