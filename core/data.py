from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from typing import Dict, Iterable, List, Optional

import pandas as pd
import requests

from core.filters import DashboardFilters, filter_frame, filter_rows, normalize_filters


logger = logging.getLogger(__name__)

SHEET_ID = "1br-F3OlvJWn5TDn1Loh7WEXOtVw-o1Y7gl3kAxaMfHM"
SHEET_GID = "0"  # first sheet
CSV_URL = f"https://docs.google.com/spreadsheets/d/{SHEET_ID}/export?format=csv&gid={SHEET_GID}"
REQUEST_TIMEOUT = 30.0

COLUMN_MAPPING = {
    "Month": "month",
    "Date": "date",
    "User Name": "user_name",
    "Project Name": "project_name",
    "# of Hours": "hours",
    "Target": "target",
    "Achieved": "achieved",
    "Productivity (%)": "productivity_pct",
    "Audited": "audited",
    "Quality %": "quality_pct",
}
DIMENSION_COLUMNS = ["month", "date", "user_name", "project_name"]
NUMERIC_COLUMNS = ["hours", "target", "achieved", "productivity_pct", "audited", "quality_pct"]

_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


# ---------------- Parsing ----------------
def parse_csv(text: str) -> List[Dict[str, Optional[str]]]:
    """Parse header-first comma-delimited text into rows keyed by header.

    Lines are split on "\\n" and fields on ",". Quoted fields and embedded
    newlines are not supported. Blank lines are skipped. A short line leaves
    the trailing headers as None; surplus values are dropped.
    """
    if not text:
        return []
    lines = text.split("\n")
    headers = [h.strip() for h in lines[0].split(",")]
    rows: List[Dict[str, Optional[str]]] = []
    for line in lines[1:]:
        if line.strip() == "":
            continue
        values = [v.strip() for v in line.split(",")]
        rows.append({h: (values[i] if i < len(values) else None) for i, h in enumerate(headers)})
    return rows


def parse_headers(text: str) -> List[str]:
    if not text:
        return []
    return [h.strip() for h in text.split("\n", 1)[0].split(",")]


def parse_number(value: object) -> float:
    """Leading decimal number of the value, or 0.0 ("85%" -> 85.0, "n/a" -> 0.0)."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return 0.0 if pd.isna(value) else float(value)
    match = _LEADING_NUMBER.match(str(value).strip())
    if not match:
        return 0.0
    return float(match.group(0))


def is_numeric_text(value: object) -> bool:
    if value is None:
        return True
    s = str(value).strip()
    return s == "" or bool(_LEADING_NUMBER.match(s))


def rows_to_frame(rows: Iterable[Dict[str, Optional[str]]], headers: Optional[List[str]] = None) -> pd.DataFrame:
    rows = list(rows)
    columns = headers if headers is not None else (list(rows[0].keys()) if rows else list(COLUMN_MAPPING))
    df = pd.DataFrame(rows, columns=list(dict.fromkeys(columns))).rename(columns=COLUMN_MAPPING)
    df = df.loc[:, ~df.columns.duplicated()]
    for col in DIMENSION_COLUMNS:
        if col not in df.columns:
            df[col] = None
    for col in NUMERIC_COLUMNS:
        if col not in df.columns:
            df[col] = 0.0
        else:
            df[col] = df[col].map(parse_number).astype(float)
    return df


def unique_values(rows: Iterable[Dict[str, Optional[str]]], header: str) -> List[str]:
    """Distinct non-empty values of one column, in first-seen order."""
    seen: Dict[str, None] = {}
    for row in rows:
        value = row.get(header)
        if value:
            seen.setdefault(value, None)
    return list(seen)


# ---------------- Formatting ----------------
def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    if math.isinf(float(value)):
        return float(value)
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def format_fixed(value: object, ndigits: int = 0) -> str:
    """Fixed-point text; non-finite values render as "Infinity", "-Infinity", "NaN"."""
    if value is None:
        return f"{0.0:.{ndigits}f}"
    number = float(value)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    return f"{round_half_up(number, ndigits):.{ndigits}f}"


# ---------------- Loading ----------------
def fetch_csv(url: str, timeout: float = REQUEST_TIMEOUT) -> str:
    resp = requests.get(url, timeout=timeout)
    resp.raise_for_status()
    return resp.text


def _empty_context(url: str, error: Optional[str] = None) -> Dict[str, object]:
    return {
        "source_url": url,
        "rows": [],
        "headers": [],
        "frame": rows_to_frame([]),
        "months": ["All"],
        "users": ["All"],
        "default_date": "",
        "last_updated": "",
        "error": error,
    }


@lru_cache(maxsize=4)
def _load_dashboard_data_cached(url: str) -> Dict[str, object]:
    # Failures are cached too: the sheet is fetched once per URL until refresh.
    try:
        text = fetch_csv(url)
        headers = parse_headers(text)
        rows = parse_csv(text)
        frame = rows_to_frame(rows, headers)
    except Exception as exc:
        logger.exception("Error fetching data from %s", url)
        return _empty_context(url, error=str(exc))
    logger.info("Loaded %d rows (%d columns) from %s", len(rows), len(headers), url)
    return {
        "source_url": url,
        "rows": rows,
        "headers": headers,
        "frame": frame,
        "months": ["All"] + unique_values(rows, "Month"),
        "users": ["All"] + unique_values(rows, "User Name"),
        "default_date": (rows[-1].get("Date") or "") if rows else "",
        "last_updated": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "error": None,
    }


def clear_cache() -> None:
    _load_dashboard_data_cached.cache_clear()


def load_dashboard_data(url: Optional[str] = None, *, refresh: bool = False) -> Dict[str, object]:
    url = url or CSV_URL
    if refresh:
        clear_cache()
    return _load_dashboard_data_cached(url)


# ---------------- Views ----------------
def dates_for_selection(frame: pd.DataFrame, filters: DashboardFilters) -> List[str]:
    """Dates offered by the date selector: month and user apply, date does not."""
    scoped = filter_frame(frame, filters, dimensions=("month", "user"))
    if scoped.empty or "date" not in scoped.columns:
        return []
    return sorted({str(d) for d in scoped["date"].tolist() if d})


def prepare_context(filters: dict | DashboardFilters, data_ctx: Dict[str, object]) -> Dict[str, object]:
    frame: pd.DataFrame = data_ctx.get("frame")
    if frame is None:
        frame = rows_to_frame([])
    rows = data_ctx.get("rows", []) or []
    filt = (
        filters
        if isinstance(filters, DashboardFilters)
        else normalize_filters(filters, default_date=str(data_ctx.get("default_date") or ""))
    )

    return {
        "filters": filt,
        "frame": frame,
        "rows": rows,
        "headers": data_ctx.get("headers", []) or [],
        "filtered": filter_frame(frame, filt),
        "trend": filter_frame(frame, filt, dimensions=("month", "user")),
        "user_scope": filter_frame(frame, filt, dimensions=("month", "date")),
        "filtered_rows": filter_rows(rows, filt),
        "trend_rows": filter_rows(rows, filt, dimensions=("month", "user")),
        "dates": dates_for_selection(frame, filt),
        "months": data_ctx.get("months", ["All"]),
        "users": data_ctx.get("users", ["All"]),
        "last_updated": data_ctx.get("last_updated", ""),
        "error": data_ctx.get("error"),
    }
