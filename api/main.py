from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import math
from typing import Callable, Dict, List, Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.responses import Response

from api.schemas import DashboardFiltersModel, MetaMonthsResponse, MonthlyRecordModel, StoreStatusResponse
from core.data import AchievementPolicy, available_months, records_to_frame, select_months
from core.filters import DashboardFilters, normalize_filters
from core.metrics_budget import compute_budget_comparison
from core.metrics_costs import compute_costs, compute_profits
from core.metrics_heatmap import compute_heatmap
from core.metrics_overview import compute_overview
from core.metrics_sales import compute_sales
from core.sources import default_source
from core.store import FetchCallable, LoadStatus, MetricsStore

logger = logging.getLogger(__name__)


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        ),
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _status_payload(store: MetricsStore) -> Dict[str, object]:
    return StoreStatusResponse(status=store.status.value, error=store.error, record_count=len(store.records)).model_dump()


def _store_unavailable(store: MetricsStore) -> Optional[JSONResponse]:
    if store.status == LoadStatus.ERROR:
        return JSONResponse(status_code=503, content={"error": store.error, "type": "LoadFailure"})
    return None


def _filters_from_model(model: DashboardFiltersModel, store: MetricsStore) -> DashboardFilters:
    return normalize_filters(model.model_dump(), available_months=available_months(store.records))


def create_app(source: Optional[FetchCallable] = None, *, policy: AchievementPolicy = AchievementPolicy.TRUST) -> FastAPI:
    """Build the API around its own store; the store loads once on startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await app.state.store.load()
        yield

    app = FastAPI(title="Management Dashboard API", version="0.1.0", lifespan=lifespan)
    app.state.store = MetricsStore(source if source is not None else default_source(), policy=policy)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def store_of(request: Request) -> MetricsStore:
        return request.app.state.store

    @app.get("/status")
    def status(request: Request):
        return _json(_status_payload(store_of(request)))

    @app.post("/load")
    async def load(request: Request):
        store = store_of(request)
        result = await store.load()
        return _json(_status_payload(store), status_code=200 if result.ok else 503)

    @app.get("/meta/months")
    def meta_months(request: Request):
        store = store_of(request)
        unavailable = _store_unavailable(store)
        if unavailable is not None:
            return unavailable
        return _json(MetaMonthsResponse(months=available_months(store.records)).model_dump())

    @app.get("/records")
    def records(request: Request):
        store = store_of(request)
        unavailable = _store_unavailable(store)
        if unavailable is not None:
            return unavailable
        rows: List[dict] = [MonthlyRecordModel(**r.to_camel()).model_dump() for r in store.records]
        return _json({"records": rows})

    def page_endpoint(name: str, compute: Callable[[DashboardFilters, object], dict]):
        def endpoint(filters: DashboardFiltersModel, request: Request):
            store = store_of(request)
            unavailable = _store_unavailable(store)
            if unavailable is not None:
                return unavailable
            try:
                f = _filters_from_model(filters, store)
                return _json(compute(f, store.records))
            except Exception as exc:
                logger.exception("%s failed", name)
                return _error(exc)

        endpoint.__name__ = name.replace("-", "_")
        return endpoint

    app.post("/overview")(page_endpoint("overview", compute_overview))
    app.post("/budget-comparison")(page_endpoint("budget-comparison", compute_budget_comparison))
    app.post("/sales")(page_endpoint("sales", compute_sales))
    app.post("/costs")(page_endpoint("costs", compute_costs))
    app.post("/profits")(page_endpoint("profits", compute_profits))
    app.post("/heatmap")(page_endpoint("heatmap", compute_heatmap))

    @app.post("/export/{page}")
    def export_page(page: str, filters: DashboardFiltersModel, request: Request):
        store = store_of(request)
        unavailable = _store_unavailable(store)
        if unavailable is not None:
            return unavailable
        f = _filters_from_model(filters, store)

        filename = f"{page}.csv"
        if page in {"overview", "records"}:
            export_df = records_to_frame(select_months(store.records, f.selected_months))
        elif page == "budget-comparison":
            export_df = pd.json_normalize(compute_budget_comparison(f, store.records)["rows"])
        elif page == "sales":
            export_df = pd.json_normalize(compute_sales(f, store.records)["rows"])
        elif page == "costs":
            export_df = pd.json_normalize(compute_costs(f, store.records)["rows"])
        elif page == "profits":
            export_df = pd.json_normalize(compute_profits(f, store.records)["rows"])
        elif page == "heatmap":
            export_df = pd.json_normalize(compute_heatmap(f, store.records)["rows"])
        else:
            export_df = pd.DataFrame()

        csv_bytes = export_df.to_csv(index=False).encode("utf-8")
        return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})

    return app


app = create_app()
