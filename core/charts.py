from __future__ import annotations

from typing import Any, Dict

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def _records_long(trend: pd.DataFrame, value_vars: Dict[str, str]) -> pd.DataFrame:
    """One x position per record (`record`), melted to one row per record and metric."""
    base = trend.reset_index(drop=True)
    base.insert(0, "record", range(1, len(base) + 1))
    long_df = base.melt(
        id_vars=["record", "date", "user_name"],
        value_vars=list(value_vars),
        var_name="metric",
        value_name="value",
    )
    long_df["metric"] = long_df["metric"].map(value_vars)
    return long_df


def _record_axis() -> alt.X:
    return alt.X("record:O", title="Date (one point per record)", sort=None, axis=alt.Axis(grid=False, labels=False, ticks=False))


def productivity_trend_chart(trend: pd.DataFrame) -> alt.Chart:
    """Productivity % and Quality % per record, one line each, in row order."""
    long_df = _records_long(trend, {"productivity_pct": "Productivity (%)", "quality_pct": "Quality %"})
    hover = alt.selection_point(fields=["metric"], on="mouseover", empty="all")
    return (
        alt.Chart(long_df)
        .mark_line(point={"filled": True, "size": 40})
        .encode(
            x=_record_axis(),
            y=alt.Y("value:Q", title=None, scale=alt.Scale(domain=[0, 100]), axis=alt.Axis(gridDash=[3, 3], domain=False)),
            color=alt.Color("metric:N", title=None, scale=alt.Scale(range=["#667eea", "#f093fb"])),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
            tooltip=[
                alt.Tooltip("date:N", title="Date"),
                alt.Tooltip("user_name:N", title="User"),
                alt.Tooltip("metric:N", title="Metric"),
                alt.Tooltip("value:Q", title="Value", format=".1f"),
            ],
        )
        .add_params(hover)
        .properties(height=300)
    )


def target_vs_achieved_chart(trend: pd.DataFrame) -> alt.Chart:
    long_df = _records_long(trend, {"target": "Target", "achieved": "Achieved"})
    return (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=_record_axis(),
            xOffset=alt.XOffset("metric:N", sort=["Target", "Achieved"]),
            y=alt.Y("value:Q", title=None, axis=alt.Axis(format="~s", gridDash=[3, 3], domain=False)),
            color=alt.Color(
                "metric:N",
                title=None,
                sort=["Target", "Achieved"],
                scale=alt.Scale(domain=["Target", "Achieved"], range=["#667eea", "#10b981"]),
            ),
            tooltip=[
                alt.Tooltip("date:N", title="Date"),
                alt.Tooltip("user_name:N", title="User"),
                alt.Tooltip("metric:N", title="Metric"),
                alt.Tooltip("value:Q", title="Value", format=",.0f"),
            ],
        )
        .properties(height=300)
    )
