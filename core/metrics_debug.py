from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from core.data import COLUMN_MAPPING, NUMERIC_COLUMNS, is_numeric_text
from core.filters import DashboardFilters


def compute_debug(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    rows = ctx.get("rows", []) or []
    headers = ctx.get("headers", []) or []
    frame: pd.DataFrame = ctx.get("frame", pd.DataFrame())
    numeric_headers = [h for h, col in COLUMN_MAPPING.items() if col in NUMERIC_COLUMNS]

    payload = {
        "filters": asdict(filters),
        "row_counts": {
            "all_rows": int(len(rows)),
            "filtered_rows": int(len(ctx.get("filtered", pd.DataFrame()))),
            "trend_rows": int(len(ctx.get("trend", pd.DataFrame()))),
            "user_scope_rows": int(len(ctx.get("user_scope", pd.DataFrame()))),
        },
        "headers": list(headers),
        "missing_headers": [h for h in COLUMN_MAPPING if headers and h not in headers],
        "non_numeric_cells": {},
        "short_rows": int(sum(1 for r in rows if any(v is None for v in r.values()))),
        "unique_counts": {},
        "last_updated": ctx.get("last_updated", ""),
        "error": ctx.get("error"),
    }

    # Values that coerce to 0 only because they have no leading number.
    payload["non_numeric_cells"] = {
        h: int(sum(1 for r in rows if not is_numeric_text(r.get(h)))) for h in numeric_headers if h in headers
    }

    if not frame.empty:
        payload["unique_counts"] = {
            col: int(frame.loc[frame[col].fillna("").astype(str) != "", col].nunique())
            for col in ["month", "date", "user_name", "project_name"]
            if col in frame.columns
        }
    return payload
