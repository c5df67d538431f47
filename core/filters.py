from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from core.formatting import BandCutoffs

FISCAL_YEAR_START_MONTH = 4


@dataclass(frozen=True)
class Thresholds:
    badge: float = 100.0
    band_excellent: float = 120.0
    band_good: float = 105.0
    band_fair: float = 95.0
    band_caution: float = 80.0

    def band_cutoffs(self) -> BandCutoffs:
        return BandCutoffs(self.band_excellent, self.band_good, self.band_fair, self.band_caution)


@dataclass(frozen=True)
class DashboardFilters:
    selected_months: List[str] = field(default_factory=list)
    thresholds: Thresholds = field(default_factory=Thresholds)
    kpi_change_label: str = "前月比"


def fiscal_month_order(month: object) -> int:
    """Position of a month label in an April-first fiscal year (4 -> 0, 3 -> 11)."""
    try:
        m = int(str(month).strip())
    except (TypeError, ValueError):
        return 12
    if not 1 <= m <= 12:
        return 12
    return (m - FISCAL_YEAR_START_MONTH) % 12


def sort_fiscal_months(months: Iterable[object]) -> List[str]:
    return sorted((str(m) for m in months), key=fiscal_month_order)


def _as_month_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    out: List[str] = []
    for v in values:
        if v is None:
            continue
        s = str(v).strip()
        if s and s not in out:
            out.append(s)
    return out


def _as_float(value: object, default: float) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def normalize_filters(raw: dict, *, available_months: Optional[List[str]] = None) -> DashboardFilters:
    available = [str(m) for m in (available_months or [])]

    selected_months = _as_month_list(raw.get("selected_months"))
    if available:
        selected_months = [m for m in selected_months if m in available]
    if not selected_months:
        selected_months = list(available)
    selected_months = sort_fiscal_months(selected_months)

    defaults = Thresholds()
    t = raw.get("thresholds") or {}
    cutoffs = sorted(
        [
            _as_float(t.get("band_excellent"), defaults.band_excellent),
            _as_float(t.get("band_good"), defaults.band_good),
            _as_float(t.get("band_fair"), defaults.band_fair),
            _as_float(t.get("band_caution"), defaults.band_caution),
        ],
        reverse=True,
    )
    thresholds = Thresholds(
        badge=_as_float(t.get("badge"), defaults.badge),
        band_excellent=cutoffs[0],
        band_good=cutoffs[1],
        band_fair=cutoffs[2],
        band_caution=cutoffs[3],
    )

    kpi_change_label = (raw.get("kpi_change_label") or "前月比").strip() or "前月比"
    return DashboardFilters(
        selected_months=selected_months,
        thresholds=thresholds,
        kpi_change_label=kpi_change_label,
    )
