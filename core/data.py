from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from core.errors import RecordFormatError
from core.filters import fiscal_month_order, sort_fiscal_months
from core.formatting import achievement_rate

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1]
FILE_GLOB = "monthly_records*.*"
SUPPORTED_SUFFIXES = {".csv", ".xlsx"}

AMOUNT_FIELDS = (
    "actual_sales",
    "budget_sales",
    "actual_costs",
    "budget_costs",
    "actual_profit",
    "budget_profit",
    "contract_sales",
    "monthly_sales",
)

# achievement field -> (actual field, budget field)
ACHIEVEMENT_FIELDS = {
    "sales_achievement": ("actual_sales", "budget_sales"),
    "costs_achievement": ("actual_costs", "budget_costs"),
    "profit_achievement": ("actual_profit", "budget_profit"),
}

RECORD_COLUMNS = {
    "month": "month",
    "Month": "month",
    "月": "month",
    "actualSales": "actual_sales",
    "売上実績": "actual_sales",
    "budgetSales": "budget_sales",
    "売上予算": "budget_sales",
    "salesAchievement": "sales_achievement",
    "売上達成率": "sales_achievement",
    "actualCosts": "actual_costs",
    "費用実績": "actual_costs",
    "budgetCosts": "budget_costs",
    "費用予算": "budget_costs",
    "costsAchievement": "costs_achievement",
    "費用消化率": "costs_achievement",
    "actualProfit": "actual_profit",
    "利益実績": "actual_profit",
    "budgetProfit": "budget_profit",
    "利益予算": "budget_profit",
    "profitAchievement": "profit_achievement",
    "利益達成率": "profit_achievement",
    "contractSales": "contract_sales",
    "契約獲得": "contract_sales",
    "monthlySales": "monthly_sales",
    "月次按分": "monthly_sales",
}

REQUIRED_COLUMNS = ["month", "actual_sales", "budget_sales", "actual_costs", "budget_costs", "actual_profit", "budget_profit"]


class AchievementPolicy(str, Enum):
    """How stored achievement percentages are treated on load."""

    TRUST = "trust"
    RECOMPUTE = "recompute"


@dataclass(frozen=True)
class MonthlyRecord:
    month: str
    actual_sales: int
    budget_sales: int
    sales_achievement: float
    actual_costs: int
    budget_costs: int
    costs_achievement: float
    actual_profit: int
    budget_profit: int
    profit_achievement: float
    contract_sales: int = 0
    monthly_sales: int = 0

    def to_camel(self) -> Dict[str, object]:
        return {_snake_to_camel(k): v for k, v in asdict(self).items()}


def _snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.title() for p in rest)


MOCK_MONTHLY_DATA: Tuple[MonthlyRecord, ...] = (
    MonthlyRecord("4", 85000000, 80000000, 106.3, 65000000, 60000000, 108.3, 20000000, 20000000, 100.0, 90000000, 85000000),
    MonthlyRecord("5", 82000000, 85000000, 96.5, 62000000, 65000000, 95.4, 20000000, 20000000, 100.0, 85000000, 82000000),
    MonthlyRecord("6", 90000000, 85000000, 105.9, 67000000, 65000000, 103.1, 23000000, 20000000, 115.0, 95000000, 90000000),
    MonthlyRecord("7", 88000000, 90000000, 97.8, 70000000, 68000000, 102.9, 18000000, 22000000, 81.8, 92000000, 88000000),
    MonthlyRecord("8", 95000000, 90000000, 105.6, 71000000, 68000000, 104.4, 24000000, 22000000, 109.1, 100000000, 95000000),
    MonthlyRecord("9", 92000000, 95000000, 96.8, 70000000, 72000000, 97.2, 22000000, 23000000, 95.7, 95000000, 92000000),
    MonthlyRecord("10", 100000000, 95000000, 105.3, 75000000, 72000000, 104.2, 25000000, 23000000, 108.7, 105000000, 100000000),
    MonthlyRecord("11", 98000000, 100000000, 98.0, 74000000, 75000000, 98.7, 24000000, 25000000, 96.0, 102000000, 98000000),
    MonthlyRecord("12", 105000000, 100000000, 105.0, 78000000, 75000000, 104.0, 27000000, 25000000, 108.0, 110000000, 105000000),
    MonthlyRecord("1", 95000000, 95000000, 100.0, 72000000, 72000000, 100.0, 23000000, 23000000, 100.0, 98000000, 95000000),
    MonthlyRecord("2", 100000000, 95000000, 105.3, 75000000, 72000000, 104.2, 25000000, 23000000, 108.7, 105000000, 100000000),
    MonthlyRecord("3", 110000000, 100000000, 110.0, 80000000, 75000000, 106.7, 30000000, 25000000, 120.0, 115000000, 110000000),
)


def get_source_files(data_dir: Optional[Path] = None) -> List[Path]:
    base = data_dir or DATA_DIR
    return sorted(p for p in base.glob(FILE_GLOB) if p.suffix.lower() in SUPPORTED_SUFFIXES)


def normalize_month(value: object) -> str:
    """'4', 4, 4.0 and '4月' all become '4'."""
    s = str(value).strip().removesuffix("月")
    try:
        return str(int(float(s)))
    except ValueError:
        return s


def find_drift(record: MonthlyRecord) -> Dict[str, Tuple[float, float]]:
    """Achievement fields whose stored value differs from actual/budget at one decimal."""
    drift: Dict[str, Tuple[float, float]] = {}
    for field_name, (actual_field, budget_field) in ACHIEVEMENT_FIELDS.items():
        expected = achievement_rate(getattr(record, actual_field), getattr(record, budget_field))
        stored = getattr(record, field_name)
        if expected is not None and abs(expected - stored) > 0.05 + 1e-9:
            drift[field_name] = (stored, expected)
    return drift


def recompute_achievements(record: MonthlyRecord) -> MonthlyRecord:
    updates = {}
    for field_name, (actual_field, budget_field) in ACHIEVEMENT_FIELDS.items():
        rate = achievement_rate(getattr(record, actual_field), getattr(record, budget_field))
        if rate is not None:
            updates[field_name] = rate
    return replace(record, **updates)


def apply_achievement_policy(records: Iterable[MonthlyRecord], policy: AchievementPolicy) -> Tuple[MonthlyRecord, ...]:
    out: List[MonthlyRecord] = []
    for record in records:
        drift = find_drift(record)
        if drift and policy == AchievementPolicy.TRUST:
            for field_name, (stored, expected) in drift.items():
                logger.warning("Month %s: stored %s=%.1f differs from actual/budget %.1f", record.month, field_name, stored, expected)
        if policy == AchievementPolicy.RECOMPUTE:
            record = recompute_achievements(record)
        out.append(record)
    return tuple(out)


def records_to_frame(records: Sequence[MonthlyRecord]) -> pd.DataFrame:
    columns = list(MonthlyRecord.__dataclass_fields__)
    if not records:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([asdict(r) for r in records], columns=columns)


def records_from_frame(df: pd.DataFrame) -> Tuple[MonthlyRecord, ...]:
    df = df.rename(columns={c: RECORD_COLUMNS.get(str(c).strip(), str(c).strip()) for c in df.columns})
    df = df.loc[:, ~df.columns.duplicated()]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise RecordFormatError(f"Missing required columns: {', '.join(missing)}")

    df = df.dropna(subset=["month"]).copy()
    if df.empty:
        return ()
    for col in AMOUNT_FIELDS:
        if col not in df.columns:
            df[col] = 0
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0).round().astype("int64")
    for field_name, (actual_field, budget_field) in ACHIEVEMENT_FIELDS.items():
        derived = df.apply(lambda r: achievement_rate(r[actual_field], r[budget_field]), axis=1)
        if field_name in df.columns:
            df[field_name] = pd.to_numeric(df[field_name], errors="coerce").fillna(derived)
        else:
            df[field_name] = derived
        df[field_name] = df[field_name].fillna(0.0).astype(float)
    df["month"] = df["month"].apply(normalize_month)

    fields = list(MonthlyRecord.__dataclass_fields__)
    return tuple(
        MonthlyRecord(**{f: (row[f].item() if hasattr(row[f], "item") else row[f]) for f in fields})
        for _, row in df[fields].iterrows()
    )


def load_monthly_records_file(path: Path) -> Tuple[MonthlyRecord, ...]:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path)
    elif suffix == ".xlsx":
        df = pd.read_excel(path, engine="openpyxl")
    else:
        raise RecordFormatError(f"Unsupported file type: {path.name}")
    records = records_from_frame(df)
    logger.info("Loaded %d monthly records from %s", len(records), path.name)
    return records


def available_months(records: Sequence[MonthlyRecord]) -> List[str]:
    return sort_fiscal_months(dict.fromkeys(r.month for r in records))


def select_months(records: Sequence[MonthlyRecord], months: Sequence[str]) -> List[MonthlyRecord]:
    """Records in the selected months, in fiscal order; all records when nothing is selected."""

    wanted = set(months)
    picked = [r for r in records if not wanted or r.month in wanted]
    return sorted(picked, key=lambda r: fiscal_month_order(r.month))
