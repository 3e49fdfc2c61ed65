from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class DateRangeModel(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None


class TableFiltersModel(BaseModel):
    search_term: str = ""
    campaign: str = ""
    agent: str = ""
    payment_mode: str = ""
    date_equals: Optional[str] = None


class DashboardRequest(BaseModel):
    date_range: Optional[DateRangeModel] = None
    table: Optional[TableFiltersModel] = None
    agent_search: Optional[str] = None
    agent_date: Optional[str] = None
    ftd_search: Optional[str] = None
    full_day_mode: Optional[bool] = None
    interval_minutes: Optional[Literal[30, 60]] = None
    interval_date: Optional[str] = None
    stats_range: Optional[DateRangeModel] = None
    day_wise_range: Optional[DateRangeModel] = None
    top_limit: Optional[int] = Field(default=None, ge=1, le=100)

    def to_raw(self) -> dict:
        """Only the fields the caller actually sent, so the rest keep their session value."""
        return self.model_dump(exclude_none=True)


class AttendanceUpdate(BaseModel):
    status: Literal["present", "absent", "attr"]


class CentreUpdate(BaseModel):
    centre: Literal["Rajajinagar", "Gopalan Mall"]
