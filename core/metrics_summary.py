from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from core.data import format_fixed
from core.filters import DashboardFilters


SUM_COLUMNS = {"hours": "hours", "target": "target", "achieved": "achieved", "audited": "audited"}
MEAN_COLUMNS = {"productivity": "productivity_pct", "quality": "quality_pct"}
DISPLAY_DIGITS = {"hours": 1, "target": 0, "achieved": 0, "audited": 0, "productivity": 1, "quality": 1}


def _column_sum(df: pd.DataFrame, col: str) -> float:
    if df.empty or col not in df.columns:
        return 0.0
    return float(df[col].sum())


def summarize(df: pd.DataFrame) -> Dict[str, Any]:
    """Sums and means over the given rows. Zero-valued cells count toward the mean."""
    count = int(len(df))
    out: Dict[str, Any] = {key: _column_sum(df, col) for key, col in SUM_COLUMNS.items()}
    for key, col in MEAN_COLUMNS.items():
        out[key] = _column_sum(df, col) / count if count else 0.0
    out["count"] = count
    return out


def compute_summary(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    df: pd.DataFrame = ctx.get("filtered", pd.DataFrame())
    kpis = summarize(df)
    display = {key: format_fixed(kpis[key], digits) for key, digits in DISPLAY_DIGITS.items()}
    display["count"] = str(kpis["count"])
    return {
        "filters": asdict(filters),
        "kpis": kpis,
        "display": display,
        "last_updated": ctx.get("last_updated", ""),
    }
