from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field


class ThresholdsModel(BaseModel):
    badge: float = 100.0
    band_excellent: float = 120.0
    band_good: float = 105.0
    band_fair: float = 95.0
    band_caution: float = 80.0


class DashboardFiltersModel(BaseModel):
    selected_months: List[Union[int, str]] = Field(default_factory=list)
    thresholds: ThresholdsModel = Field(default_factory=ThresholdsModel)
    kpi_change_label: str = "前月比"


class MonthlyRecordModel(BaseModel):
    month: str
    actualSales: int
    budgetSales: int
    salesAchievement: float
    actualCosts: int
    budgetCosts: int
    costsAchievement: float
    actualProfit: int
    budgetProfit: int
    profitAchievement: float
    contractSales: int = 0
    monthlySales: int = 0


class StoreStatusResponse(BaseModel):
    status: str
    error: Optional[str] = None
    record_count: int = 0


class MetaMonthsResponse(BaseModel):
    months: List[str]
