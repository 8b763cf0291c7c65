"""Tests for the page compute functions (summary, users, trend, debug)."""
from __future__ import annotations

import pytest

from core import data as dc
from core.charts import productivity_trend_chart, target_vs_achieved_chart, to_vega_spec
from core.filters import DashboardFilters
from core.metrics_debug import compute_debug
from core.metrics_summary import compute_summary, summarize
from core.metrics_trend import compute_trend, detailed_records
from core.metrics_users import compute_user_performance, user_card_html, user_performance


def _ctx(data_ctx, **filters):
    f = DashboardFilters(**filters)
    return f, dc.prepare_context(f, data_ctx)


# ============================================================================
# Summary
# ============================================================================

def test_summary_over_all_rows(data_ctx):
    f, ctx = _ctx(data_ctx)
    kpis = compute_summary(f, ctx)["kpis"]
    assert kpis["count"] == 5
    assert kpis["hours"] == pytest.approx(33.5)
    assert kpis["target"] == pytest.approx(410)
    assert kpis["achieved"] == pytest.approx(300)
    assert kpis["audited"] == pytest.approx(39)
    # The blank productivity cell counts as zero in the mean.
    assert kpis["productivity"] == pytest.approx(71.0)
    assert kpis["quality"] == pytest.approx(91.0)


def test_summary_display_rounding(data_ctx):
    f, ctx = _ctx(data_ctx, month="Jan")
    payload = compute_summary(f, ctx)
    assert payload["display"] == {
        "hours": "21.5",
        "target": "280",
        "achieved": "260",
        "audited": "30",
        "productivity": "91.7",
        "quality": "93.3",
        "count": "3",
    }
    assert payload["filters"] == {"month": "Jan", "date": "", "user": "All"}


def test_summary_empty_selection_is_all_zero(data_ctx):
    f, ctx = _ctx(data_ctx, user="Nobody")
    kpis = compute_summary(f, ctx)["kpis"]
    assert kpis == {"hours": 0.0, "target": 0.0, "achieved": 0.0, "audited": 0.0, "productivity": 0.0, "quality": 0.0, "count": 0}


def test_summarize_empty_frame():
    assert summarize(dc.rows_to_frame([]))["hours"] == 0.0


# ============================================================================
# Users
# ============================================================================

def test_user_performance_means_and_order(data_ctx):
    out = user_performance(data_ctx["frame"])
    assert [u["name"] for u in out] == ["Alice", "Bob", "Carol"]
    alice, bob, carol = out
    assert alice["avg_productivity"] == pytest.approx(100.0)
    assert alice["avg_quality"] == pytest.approx(96.0)
    assert alice["hours"] == pytest.approx(14.0)
    assert alice["rows"] == 2
    assert bob["avg_productivity"] == pytest.approx(37.5)
    assert bob["avg_quality"] == pytest.approx(89.0)
    assert carol["rows"] == 1


def test_user_performance_ignores_user_filter(data_ctx):
    f, ctx = _ctx(data_ctx, month="Jan", user="Bob")
    users = compute_user_performance(f, ctx)["users"]
    assert [u["name"] for u in users] == ["Alice", "Bob"]
    assert users[1]["display"] == {"avg_productivity": "75.0", "avg_quality": "88.0", "hours": "7.5"}


def test_user_performance_respects_date(data_ctx):
    f, ctx = _ctx(data_ctx, date="2025-02-01")
    users = compute_user_performance(f, ctx)["users"]
    assert [u["name"] for u in users] == ["Bob", "Carol"]


def test_user_performance_missing_and_blank_user_names_stay_apart():
    """A short line (no User Name value) and an empty User Name are different groups."""
    rows = dc.parse_csv("Month,# of Hours,User Name\nJan,2\nJan,3,\nJan,4,Dan\nJan,5\n")
    out = user_performance(dc.rows_to_frame(rows))
    assert [u["name"] for u in out] == [None, "", "Dan"]
    assert [u["hours"] for u in out] == [pytest.approx(7.0), pytest.approx(3.0), pytest.approx(4.0)]
    assert [u["rows"] for u in out] == [2, 1, 1]


def test_user_performance_empty():
    assert user_performance(dc.rows_to_frame([])) == []


# ============================================================================
# Trend / records
# ============================================================================

def test_trend_ignores_date_filter(data_ctx):
    f, ctx = _ctx(data_ctx, month="Jan", date="2025-01-03", user="Alice")
    payload = compute_trend(f, ctx)
    assert [t["date"] for t in payload["trend"]] == ["2025-01-02", "2025-01-03"]
    assert payload["dates"] == ["2025-01-02", "2025-01-03"]
    assert set(payload["charts"]) == {"productivity_trend", "target_vs_achieved"}
    assert payload["charts"]["productivity_trend"]["mark"]["type"] == "line"


def test_trend_records_are_raw_and_limited(data_ctx):
    f, ctx = _ctx(data_ctx)
    payload = compute_trend(f, ctx, limit=2)
    assert len(payload["records"]) == 2
    assert payload["records"][0]["hours"] == "8"
    assert payload["records"][0]["project_name"] == "Alpha"


def test_trend_empty(data_ctx):
    f, ctx = _ctx(data_ctx, month="Dec")
    payload = compute_trend(f, ctx)
    assert payload["trend"] == []
    assert payload["charts"] == {}


def test_detailed_records_negative_limit(rows):
    assert detailed_records(rows, -1) == []


# ============================================================================
# Debug
# ============================================================================

def test_debug_payload(data_ctx):
    f, ctx = _ctx(data_ctx, month="Feb")
    payload = compute_debug(f, ctx)
    assert payload["row_counts"]["all_rows"] == 5
    assert payload["row_counts"]["filtered_rows"] == 2
    assert payload["missing_headers"] == []
    assert payload["non_numeric_cells"]["Achieved"] == 1
    assert payload["non_numeric_cells"]["Productivity (%)"] == 0
    assert payload["unique_counts"]["user_name"] == 3
    assert payload["short_rows"] == 0


# ============================================================================
# Non-finite values
# ============================================================================

OVERFLOW_CSV = "Month,Date,User Name,# of Hours,Productivity (%)\nJan,d1,A,1e999,1e999\nJan,d2,B,2,50\n"


def test_summary_with_overflowing_number_renders_infinity():
    rows = dc.parse_csv(OVERFLOW_CSV)
    data_ctx = {"rows": rows, "frame": dc.rows_to_frame(rows), "default_date": ""}
    f, ctx = _ctx(data_ctx)
    payload = compute_summary(f, ctx)
    assert payload["display"]["hours"] == "Infinity"
    assert payload["display"]["productivity"] == "Infinity"
    assert payload["display"]["target"] == "0"


def test_user_performance_with_overflowing_number_renders_infinity():
    rows = dc.parse_csv(OVERFLOW_CSV)
    data_ctx = {"rows": rows, "frame": dc.rows_to_frame(rows), "default_date": ""}
    f, ctx = _ctx(data_ctx)
    users = compute_user_performance(f, ctx)["users"]
    assert users[0]["display"]["hours"] == "Infinity"
    assert users[1]["display"]["hours"] == "2.0"


# ============================================================================
# Charts
# ============================================================================

def _dataset_values(spec):
    return next(iter(spec["datasets"].values()))


def test_charts_plot_one_point_per_record_on_shared_dates(data_ctx):
    """Rows sharing a date keep separate x positions."""
    trend = data_ctx["frame"].iloc[:2]
    assert trend["date"].nunique() == 1
    for chart in (productivity_trend_chart(trend), target_vs_achieved_chart(trend)):
        spec = to_vega_spec(chart)
        assert spec["encoding"]["x"]["field"] == "record"
        values = _dataset_values(spec)
        assert sorted({v["record"] for v in values}) == [1, 2]
        assert len(values) == 4


def test_trend_charts_are_complete_vega_lite_specs(data_ctx):
    f, ctx = _ctx(data_ctx, month="Jan")
    charts = compute_trend(f, ctx)["charts"]
    for spec in charts.values():
        assert "$schema" in spec
        assert len(_dataset_values(spec)) == 2 * 3


# ============================================================================
# User card markup
# ============================================================================

def test_user_card_html_escapes_sheet_values():
    user = {
        "name": "<script>alert(1)</script>",
        "display": {"avg_productivity": "90.0", "avg_quality": "95.0", "hours": "8.0"},
    }
    markup = user_card_html(user)
    assert "<script>" not in markup
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in markup
    assert "90.0%" in markup


def test_user_card_html_missing_name():
    markup = user_card_html({"name": None, "display": {"avg_productivity": "0.0", "avg_quality": "0.0", "hours": "0.0"}})
    assert "<div class='name'></div>" in markup
