"""Display formatting and threshold classification for monthly metrics.

Every function here is pure: the same input always yields the same output and
nothing is cached between calls. Results carry semantic classifications only
("positive", a band name); colour mapping belongs to the rendering surface.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Dict, NamedTuple, Optional

YEN_SYMBOL = "¥"


class HeatmapBand(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    CAUTION = "caution"
    POOR = "poor"

    @property
    def rank(self) -> int:
        """0 is the most favorable band, 4 the least."""
        return list(HeatmapBand).index(self)


class BandCutoffs(NamedTuple):
    excellent: float = 120.0
    good: float = 105.0
    fair: float = 95.0
    caution: float = 80.0


DEFAULT_BAND_CUTOFFS = BandCutoffs()


@dataclass(frozen=True)
class Badge:
    value: float
    positive: bool

    @property
    def label(self) -> str:
        return format_percentage(self.value)

    def to_dict(self) -> Dict[str, object]:
        return {"value": self.value, "positive": self.positive, "label": self.label}


@dataclass(frozen=True)
class KpiChange:
    change: float
    direction: str
    positive: bool
    label: str


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None:
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def format_currency(amount: float) -> str:
    """Yen amount with thousands grouping and no fractional digits: ¥85,000,000."""
    rounded = int(round_half_up(abs(amount)) or 0)
    sign = "-" if amount < 0 and rounded else ""
    return f"{sign}{YEN_SYMBOL}{rounded:,}"


def format_percentage(value: float) -> str:
    return f"{float(value):.1f}%"


def format_millions(amount: float, decimals: int = 0, suffix: str = "M") -> str:
    return f"{float(amount) / 1_000_000:.{decimals}f}{suffix}"


def achievement_rate(actual: float, budget: float) -> Optional[float]:
    if not budget:
        return None
    return round_half_up(float(actual) / float(budget) * 100, 1)


def classify_badge(value: float, threshold: float = 100, reverse_colors: bool = False) -> Badge:
    positive = value < threshold if reverse_colors else value >= threshold
    return Badge(value=float(value), positive=bool(positive))


def classify_heatmap_band(
    value: float,
    reversed: bool = False,
    cutoffs: BandCutoffs = DEFAULT_BAND_CUTOFFS,
) -> HeatmapBand:
    # Reversed metrics mirror the cutoffs around 100.
    if reversed:
        if value <= 200 - cutoffs.excellent:
            return HeatmapBand.EXCELLENT
        if value <= 200 - cutoffs.good:
            return HeatmapBand.GOOD
        if value <= 200 - cutoffs.fair:
            return HeatmapBand.FAIR
        if value <= 200 - cutoffs.caution:
            return HeatmapBand.CAUTION
        return HeatmapBand.POOR

    if value >= cutoffs.excellent:
        return HeatmapBand.EXCELLENT
    if value >= cutoffs.good:
        return HeatmapBand.GOOD
    if value >= cutoffs.fair:
        return HeatmapBand.FAIR
    if value >= cutoffs.caution:
        return HeatmapBand.CAUTION
    return HeatmapBand.POOR


def kpi_change(change: float, unit: str = "%") -> KpiChange:
    """Delta shown under a KPI card value; zero counts as a decline.

    ``unit`` is ``"%"`` for relative changes and ``"pt"`` for the
    percentage-point difference between two rates.
    """
    up = change > 0
    magnitude = abs(float(change))
    return KpiChange(
        change=float(change),
        direction="up" if up else "down",
        positive=up,
        label=f"{int(magnitude)}{unit}" if magnitude.is_integer() else f"{magnitude}{unit}",
    )
