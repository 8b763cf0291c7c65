"""Shared fixtures: a small sheet export and the data context built from it."""
from __future__ import annotations

import pytest

from core import data as dc


SHEET_CSV = (
    "Month,Date,User Name,Project Name,# of Hours,Target,Achieved,Productivity (%),Audited,Quality %\n"
    "Jan,2025-01-02,Alice,Alpha,8,100,90,90,10,95\n"
    "Jan,2025-01-02,Bob,Beta,7.5,80,60,75,8,88\n"
    "Jan,2025-01-03,Alice,Alpha,6,100,110,110,12,97\n"
    "\n"
    "Feb,2025-02-01,Bob,Beta,8,80,n/a,,5,90%\n"
    "Feb,2025-02-01,Carol,Gamma,4,50,40,80,4,85\n"
)


@pytest.fixture
def sheet_csv():
    return SHEET_CSV


@pytest.fixture
def rows():
    return dc.parse_csv(SHEET_CSV)


@pytest.fixture
def data_ctx():
    rows = dc.parse_csv(SHEET_CSV)
    return {
        "source_url": "http://sheet.test/export.csv",
        "rows": rows,
        "headers": dc.parse_headers(SHEET_CSV),
        "frame": dc.rows_to_frame(rows, dc.parse_headers(SHEET_CSV)),
        "months": ["All"] + dc.unique_values(rows, "Month"),
        "users": ["All"] + dc.unique_values(rows, "User Name"),
        "default_date": rows[-1]["Date"],
        "last_updated": "2025-02-01 09:00:00",
        "error": None,
    }


@pytest.fixture(autouse=True)
def _clear_load_cache():
    dc.clear_cache()
    yield
    dc.clear_cache()
