from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Sequence

from core.data import MonthlyRecord, select_months
from core.filters import DashboardFilters
from core.formatting import DEFAULT_BAND_CUTOFFS, BandCutoffs, HeatmapBand, classify_heatmap_band, format_percentage

# Cost consumption is the only lower-is-better column.
HEATMAP_COLUMNS = [
    ("sales", "sales_achievement", "売上達成率", False),
    ("costs", "costs_achievement", "費用消化率", True),
    ("profit", "profit_achievement", "利益達成率", False),
]


def heatmap_cell(value: float, reversed: bool = False, cutoffs: BandCutoffs = DEFAULT_BAND_CUTOFFS) -> Dict[str, Any]:
    band = classify_heatmap_band(value, reversed, cutoffs)
    return {"value": value, "label": format_percentage(value), "band": band.value, "rank": band.rank}


def compute_heatmap(filters: DashboardFilters, records: Sequence[MonthlyRecord]) -> Dict[str, Any]:
    cutoffs = filters.thresholds.band_cutoffs()
    selected = select_months(records, filters.selected_months)

    band_counts = {key: {band.value: 0 for band in HeatmapBand} for key, *_ in HEATMAP_COLUMNS}
    rows = []
    for record in selected:
        row: Dict[str, Any] = {"month": record.month}
        for key, field_name, _, reversed in HEATMAP_COLUMNS:
            cell = heatmap_cell(getattr(record, field_name), reversed, cutoffs)
            band_counts[key][cell["band"]] += 1
            row[key] = cell
        rows.append(row)

    return {
        "filters": asdict(filters),
        "columns": [{"key": key, "title": title, "reversed": reversed} for key, _, title, reversed in HEATMAP_COLUMNS],
        "rows": rows,
        "band_counts": band_counts,
    }
