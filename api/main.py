from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import DashboardFiltersModel, MetaListResponse, StatusResponse
from core.data import dates_for_selection, load_dashboard_data, prepare_context
from core.filters import DashboardFilters, normalize_filters
from core.metrics_debug import compute_debug
from core.metrics_summary import compute_summary
from core.metrics_trend import compute_trend, detailed_records
from core.metrics_users import compute_user_performance


app = FastAPI(title="Productivity Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: DashboardFiltersModel, *, default_date: str) -> DashboardFilters:
    raw = model.model_dump(exclude_unset=True)
    return normalize_filters(raw, default_date=default_date)


def _json(data: object) -> JSONResponse:
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
        )
    )


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _context(filters: DashboardFiltersModel):
    data_ctx = load_dashboard_data()
    f = _filters_from_model(filters, default_date=str(data_ctx.get("default_date") or ""))
    return f, prepare_context(f, data_ctx)


@app.get("/meta/months")
def meta_months():
    try:
        data_ctx = load_dashboard_data()
        return _json(MetaListResponse(values=list(data_ctx.get("months", ["All"]))).model_dump())
    except Exception as exc:
        logger.exception("meta_months failed")
        return _error(exc)


@app.get("/meta/users")
def meta_users():
    try:
        data_ctx = load_dashboard_data()
        return _json(MetaListResponse(values=list(data_ctx.get("users", ["All"]))).model_dump())
    except Exception as exc:
        logger.exception("meta_users failed")
        return _error(exc)


@app.get("/meta/dates")
def meta_dates(month: str = Query(default="All"), user: str = Query(default="All")):
    try:
        data_ctx = load_dashboard_data()
        f = normalize_filters({"month": month, "user": user, "date": ""})
        return _json(MetaListResponse(values=dates_for_selection(data_ctx["frame"], f)).model_dump())
    except Exception as exc:
        logger.exception("meta_dates failed")
        return _error(exc)


@app.get("/meta/status")
def meta_status():
    try:
        data_ctx = load_dashboard_data()
        status = StatusResponse(
            rows=len(data_ctx.get("rows", []) or []),
            last_updated=str(data_ctx.get("last_updated") or ""),
            source_url=str(data_ctx.get("source_url") or ""),
            error=data_ctx.get("error"),
        )
        return _json(status.model_dump())
    except Exception as exc:
        logger.exception("meta_status failed")
        return _error(exc)


@app.post("/refresh")
def refresh():
    try:
        data_ctx = load_dashboard_data(refresh=True)
        return _json({"rows": len(data_ctx.get("rows", []) or []), "last_updated": data_ctx.get("last_updated", ""), "error": data_ctx.get("error")})
    except Exception as exc:
        logger.exception("refresh failed")
        return _error(exc)


@app.post("/summary")
def summary(filters: DashboardFiltersModel):
    try:
        f, ctx = _context(filters)
        return _json(compute_summary(f, ctx))
    except Exception as exc:
        logger.exception("summary failed")
        return _error(exc)


@app.post("/trend")
def trend(filters: DashboardFiltersModel, limit: int = Query(default=20, ge=0, le=500)):
    try:
        f, ctx = _context(filters)
        return _json(compute_trend(f, ctx, limit=limit))
    except Exception as exc:
        logger.exception("trend failed")
        return _error(exc)


@app.post("/users")
def users(filters: DashboardFiltersModel):
    try:
        f, ctx = _context(filters)
        return _json(compute_user_performance(f, ctx))
    except Exception as exc:
        logger.exception("users failed")
        return _error(exc)


@app.post("/records")
def records(filters: DashboardFiltersModel, limit: int = Query(default=20, ge=0, le=500)):
    try:
        _, ctx = _context(filters)
        return _json({"records": detailed_records(ctx["filtered_rows"], limit), "total": len(ctx["filtered_rows"])})
    except Exception as exc:
        logger.exception("records failed")
        return _error(exc)


@app.post("/debug")
def debug(filters: DashboardFiltersModel):
    try:
        f, ctx = _context(filters)
        return _json(compute_debug(f, ctx))
    except Exception as exc:
        logger.exception("debug failed")
        return _error(exc)


@app.post("/export/{page}")
def export_page(page: str, filters: DashboardFiltersModel):
    try:
        _, ctx = _context(filters)

        filename = f"{page}.csv"
        headers = list(dict.fromkeys(ctx.get("headers") or [])) or None
        if page in {"summary", "records"}:
            export_df = pd.DataFrame(ctx.get("filtered_rows", []), columns=headers)
        elif page == "trend":
            export_df = pd.DataFrame(ctx.get("trend_rows", []), columns=headers)
        elif page == "users":
            export_df = pd.DataFrame(compute_user_performance(ctx["filters"], ctx)["users"]).drop(columns=["display"], errors="ignore")
        else:
            export_df = pd.DataFrame()

        csv_bytes = export_df.to_csv(index=False).encode("utf-8")
        return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
    except Exception as exc:
        logger.exception("export_page failed")
        return _error(exc)
