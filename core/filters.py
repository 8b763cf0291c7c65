from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd


ALL = "All"
DIMENSIONS = ("month", "date", "user")

# Filter dimension -> (raw sheet header, frame column)
DIMENSION_COLUMNS: Dict[str, tuple] = {
    "month": ("Month", "month"),
    "date": ("Date", "date"),
    "user": ("User Name", "user_name"),
}


@dataclass(frozen=True)
class DashboardFilters:
    month: str = ALL
    date: str = ""
    user: str = ALL


def is_active(value: Optional[str]) -> bool:
    return value not in (None, "", ALL)


def _as_selection(value: object, sentinel: str) -> str:
    if value is None:
        return sentinel
    s = str(value).strip()
    return s if s else sentinel


def normalize_filters(raw: Optional[Mapping[str, object]], *, default_date: str = "") -> DashboardFilters:
    raw = raw or {}
    date = raw["date"] if "date" in raw else default_date
    return DashboardFilters(
        month=_as_selection(raw.get("month"), ALL),
        date=_as_selection(date, ""),
        user=_as_selection(raw.get("user"), ALL),
    )


def _active_predicates(filters: DashboardFilters, dimensions: Iterable[str]) -> List[tuple]:
    out = []
    for dim in dimensions:
        if dim not in DIMENSION_COLUMNS:
            raise ValueError(f"Unknown filter dimension: {dim!r}")
        value = getattr(filters, dim)
        if is_active(value):
            out.append((dim, value))
    return out


def filter_rows(
    rows: Sequence[Mapping[str, Optional[str]]],
    filters: DashboardFilters,
    *,
    dimensions: Iterable[str] = DIMENSIONS,
) -> List[Mapping[str, Optional[str]]]:
    """Return the rows matching every active predicate, in their original order."""
    predicates = [(DIMENSION_COLUMNS[dim][0], value) for dim, value in _active_predicates(filters, dimensions)]
    return [row for row in rows if all(row.get(header) == value for header, value in predicates)]


def filter_frame(frame: pd.DataFrame, filters: DashboardFilters, *, dimensions: Iterable[str] = DIMENSIONS) -> pd.DataFrame:
    """Frame counterpart of `filter_rows`; keeps the original index order."""
    out = frame
    for dim, value in _active_predicates(filters, dimensions):
        col = DIMENSION_COLUMNS[dim][1]
        if col not in out.columns:
            return out.iloc[0:0]
        out = out[out[col] == value]
    return out
