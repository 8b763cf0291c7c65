import html

import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from core import data as dc
from core.filters import ALL, DashboardFilters
from core.metrics_summary import compute_summary
from core.metrics_trend import compute_trend
from core.metrics_users import compute_user_performance, user_card_html


ALL_DATES = "All Dates"


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #334155;margin-bottom: 10px;}
        .app-top-bar .updated {color: #94a3b8;font-size: 0.9rem;margin-top: 2px;}
        .card {border: 1px solid #334155;border-radius: 12px;padding: 16px;background: #1e293b;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 700;font-size: 1.1rem;color: #ffffff;margin-bottom: 8px;}
        .kpi {border-radius: 10px;padding: 18px;color: #ffffff;margin-bottom: 10px;}
        .kpi .label {font-size: 0.75rem;opacity: 0.9;margin-bottom: 6px;}
        .kpi .value {font-size: 1.8rem;font-weight: 700;}
        .user-card {background: #334155;border: 1px solid #475569;border-radius: 10px;padding: 14px;margin-bottom: 10px;}
        .user-card .name {font-weight: 600;color: #ffffff;margin-bottom: 8px;}
        .user-card .line {display: flex;justify-content: space-between;font-size: 0.9rem;color: #94a3b8;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{html.escape(title)}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def kpi_tile(col, label: str, value: str, color: str):
    col.markdown(
        f"<div class='kpi' style='background:{color};'><div class='label'>{html.escape(label)}</div><div class='value'>{html.escape(value)}</div></div>",
        unsafe_allow_html=True,
    )


def render_page_header(last_updated: str):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='updated'>Last updated: {html.escape(last_updated or 'N/A')}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if st.button("Refresh"):
            dc.clear_cache()
            st.rerun()


def _reset_date():
    st.session_state["date_choice"] = ALL_DATES


# ---------- UI setup ----------
st.set_page_config(page_title="Productivity Dashboard", layout="wide")
inject_base_styles()
st.title("📊 Productivity Dashboard")

with st.spinner("Loading dashboard..."):
    data_ctx = dc.load_dashboard_data()

render_page_header(str(data_ctx.get("last_updated") or ""))

months: List[str] = list(data_ctx.get("months", [ALL]))
users: List[str] = list(data_ctx.get("users", [ALL]))
frame: pd.DataFrame = data_ctx["frame"]

# Initial date selection: the Date of the last loaded row.
if "date_choice" not in st.session_state:
    st.session_state["date_choice"] = data_ctx.get("default_date") or ALL_DATES

# ----- Filters -----
with card("Filters"):
    f_cols = st.columns(3)
    with f_cols[0]:
        selected_month = st.selectbox("📅 Month", options=months, key="month_choice", on_change=_reset_date)
    with f_cols[2]:
        selected_user = st.selectbox("👥 User", options=users, key="user_choice")
    date_options = [ALL_DATES] + dc.dates_for_selection(frame, DashboardFilters(month=selected_month, user=selected_user))
    if st.session_state["date_choice"] not in date_options:
        date_options.append(st.session_state["date_choice"])
    with f_cols[1]:
        date_choice = st.selectbox("📅 Date", options=date_options, key="date_choice")

filters = DashboardFilters(
    month=selected_month or ALL,
    date="" if date_choice == ALL_DATES else date_choice,
    user=selected_user or ALL,
)
ctx = dc.prepare_context(filters, data_ctx)


# ----- Page renderers -----
def render_kpi_tiles(summary: Dict[str, Any]):
    display = summary["display"]
    cols = st.columns(6)
    kpi_tile(cols[0], "Hours Logged", f"{display['hours']}h", "linear-gradient(135deg,#2563eb,#1d4ed8)")
    kpi_tile(cols[1], "Target Tasks", display["target"], "linear-gradient(135deg,#9333ea,#7e22ce)")
    kpi_tile(cols[2], "Tasks Achieved", display["achieved"], "linear-gradient(135deg,#16a34a,#15803d)")
    kpi_tile(cols[3], "Avg Productivity", f"{display['productivity']}%", "linear-gradient(135deg,#ea580c,#c2410c)")
    kpi_tile(cols[4], "Quality Score", f"{display['quality']}%", "linear-gradient(135deg,#db2777,#be185d)")
    kpi_tile(cols[5], "Audited Items", display["audited"], "linear-gradient(135deg,#4f46e5,#4338ca)")


def render_charts(charts: Dict[str, Any]):
    chart_cols = st.columns(2)
    for col, (key, title) in zip(chart_cols, [("productivity_trend", "Productivity Trend"), ("target_vs_achieved", "Target vs Achieved")]):
        with col:
            with card(title):
                if key in charts:
                    st.vega_lite_chart(charts[key], use_container_width=True)
                else:
                    st.caption("No data.")


def render_user_cards(user_rows: List[Dict[str, Any]]):
    with card("User Performance Summary"):
        cols = st.columns(3)
        for idx, user in enumerate(user_rows):
            cols[idx % 3].markdown(user_card_html(user), unsafe_allow_html=True)


def render_records(records: List[Dict[str, Optional[str]]]):
    with card("Detailed Records"):
        table = pd.DataFrame(
            records,
            columns=["date", "user_name", "project_name", "hours", "target", "achieved", "productivity_pct", "quality_pct"],
        ).rename(
            columns={
                "date": "Date",
                "user_name": "User",
                "project_name": "Project",
                "hours": "Hours",
                "target": "Target",
                "achieved": "Achieved",
                "productivity_pct": "Productivity %",
                "quality_pct": "Quality %",
            }
        )
        st.dataframe(table, hide_index=True, use_container_width=True)


summary = compute_summary(ctx["filters"], ctx)
trend = compute_trend(ctx["filters"], ctx)
user_perf = compute_user_performance(ctx["filters"], ctx)

render_kpi_tiles(summary)
render_charts(trend["charts"])
render_user_cards(user_perf["users"])
render_records(trend["records"])
