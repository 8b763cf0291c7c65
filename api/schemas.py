from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class DashboardFiltersModel(BaseModel):
    month: Optional[str] = "All"
    date: Optional[str] = None
    user: Optional[str] = "All"


class MetaListResponse(BaseModel):
    values: List[str]


class StatusResponse(BaseModel):
    rows: int
    last_updated: str = ""
    source_url: str = ""
    error: Optional[str] = None
