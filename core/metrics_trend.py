from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from core.charts import productivity_trend_chart, target_vs_achieved_chart, to_vega_spec
from core.filters import DashboardFilters

TREND_COLUMNS = ["date", "user_name", "productivity_pct", "quality_pct", "target", "achieved"]
RECORD_COLUMNS = {
    "Date": "date",
    "User Name": "user_name",
    "Project Name": "project_name",
    "# of Hours": "hours",
    "Target": "target",
    "Achieved": "achieved",
    "Productivity (%)": "productivity_pct",
    "Quality %": "quality_pct",
}


def detailed_records(rows: List[Dict[str, Any]], limit: int = 20) -> List[Dict[str, Any]]:
    """First `limit` rows with their raw (unparsed) values."""
    return [{key: row.get(header) for header, key in RECORD_COLUMNS.items()} for row in rows[: max(0, limit)]]


def compute_trend(filters: DashboardFilters, ctx: Dict[str, Any], *, limit: int = 20) -> Dict[str, Any]:
    df: pd.DataFrame = ctx.get("trend", pd.DataFrame())
    rows = ctx.get("trend_rows", []) or []
    dates = ctx.get("dates", []) or []

    if df.empty:
        return {"filters": asdict(filters), "trend": [], "records": [], "dates": dates, "charts": {}}

    trend = df[[c for c in TREND_COLUMNS if c in df.columns]].copy()
    charts = {
        "productivity_trend": to_vega_spec(productivity_trend_chart(trend)),
        "target_vs_achieved": to_vega_spec(target_vs_achieved_chart(trend)),
    }
    return {
        "filters": asdict(filters),
        "trend": trend.to_dict(orient="records"),
        "records": detailed_records(rows, limit),
        "dates": dates,
        "charts": charts,
    }
