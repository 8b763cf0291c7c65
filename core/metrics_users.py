from __future__ import annotations

import html
from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from core.data import format_fixed
from core.filters import DashboardFilters


def user_performance(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Per-user mean productivity / quality and total hours.

    Users appear in the order they first occur in `df`. Grouping is on the raw
    `user_name` value, so a missing name (None) and a blank name ("") are
    separate groups.
    """
    if df.empty or "user_name" not in df.columns:
        return []
    # "=name" for present values, "missing" when the cell is absent.
    keyed = df.assign(user_key=df["user_name"].map(lambda v: "missing" if v is None or pd.isna(v) else f"={v}"))
    grouped = keyed.groupby("user_key", sort=False).agg(
        avg_productivity=("productivity_pct", "mean"),
        avg_quality=("quality_pct", "mean"),
        hours=("hours", "sum"),
        rows=("hours", "size"),
    )
    out: List[Dict[str, Any]] = []
    for r in grouped.itertuples():
        name = None if r.Index == "missing" else r.Index[1:]
        out.append(
            {
                "name": name,
                "avg_productivity": float(r.avg_productivity),
                "avg_quality": float(r.avg_quality),
                "hours": float(r.hours),
                "rows": int(r.rows),
            }
        )
    return out


def user_card_html(user: Dict[str, Any]) -> str:
    """Markup for one user performance card; sheet values are HTML-escaped."""
    d = user["display"]
    name = html.escape(user["name"] or "")
    return (
        "<div class='user-card'>"
        f"<div class='name'>{name}</div>"
        f"<div class='line'><span>Productivity:</span><b style='color:#4ade80'>{html.escape(d['avg_productivity'])}%</b></div>"
        f"<div class='line'><span>Quality:</span><b style='color:#60a5fa'>{html.escape(d['avg_quality'])}%</b></div>"
        f"<div class='line'><span>Hours:</span><b style='color:#c084fc'>{html.escape(d['hours'])}h</b></div>"
        "</div>"
    )


def compute_user_performance(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    # Month and date apply; the user filter does not.
    df: pd.DataFrame = ctx.get("user_scope", pd.DataFrame())
    users = user_performance(df)
    for u in users:
        u["display"] = {
            "avg_productivity": format_fixed(u["avg_productivity"], 1),
            "avg_quality": format_fixed(u["avg_quality"], 1),
            "hours": format_fixed(u["hours"], 1),
        }
    return {"filters": asdict(filters), "users": users}
