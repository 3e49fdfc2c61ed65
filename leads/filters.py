from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pandas as pd

# Columns compared by the table dropdown filters.
CAMPAIGN_COL = "source_of_come"
AGENT_COL = "spoc_name"
MODE_COL = "transaction_mode"
TS_COL = "ts"

_NA_TOKENS = {"", "nan", "nat", "none", "null", "<na>"}


def parse_timestamp(value: object) -> pd.Timestamp:
    """Best-effort timestamp parse; anything unusable becomes ``NaT``.

    Zone-aware values come back as naive local wall-clock time, matching the
    naive timestamps the feed normally carries.
    """
    if isinstance(value, pd.Timestamp):
        ts = value
    elif isinstance(value, (datetime, date)):
        ts = pd.Timestamp(value)
    else:
        text = "" if value is None else str(value).strip()
        if text.lower() in _NA_TOKENS:
            return pd.NaT
        try:
            ts = pd.to_datetime(text, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return pd.NaT
    if ts is pd.NaT or pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is not None:
        ts = pd.Timestamp(ts.to_pydatetime().astimezone().replace(tzinfo=None))
    return ts


def parse_date(value: object) -> Optional[date]:
    ts = parse_timestamp(value)
    if ts is pd.NaT:
        return None
    return ts.date()


def first_of_month(day: date) -> date:
    return day.replace(day=1)


@dataclass(frozen=True)
class DateRange:
    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def is_set(self) -> bool:
        return self.start is not None and self.end is not None

    def as_strings(self) -> Dict[str, str]:
        return {
            "start": self.start.isoformat() if self.start else "",
            "end": self.end.isoformat() if self.end else "",
        }


@dataclass(frozen=True)
class TableFilters:
    search_term: str = ""
    campaign: str = ""
    agent: str = ""
    payment_mode: str = ""
    date_equals: Optional[date] = None


@dataclass(frozen=True)
class DashboardFilters:
    date_range: DateRange = field(default_factory=DateRange)
    table: TableFilters = field(default_factory=TableFilters)
    agent_search: str = ""
    agent_date: Optional[date] = None
    ftd_search: str = ""
    full_day_mode: bool = False
    interval_minutes: int = 30
    interval_date: Optional[date] = None
    stats_range: DateRange = field(default_factory=DateRange)
    day_wise_range: DateRange = field(default_factory=DateRange)
    top_limit: int = 10


def default_date_range(today: date) -> DateRange:
    return DateRange(start=first_of_month(today), end=today)


def normalize_date_range(raw: Optional[dict], *, default: Optional[DateRange] = None) -> DateRange:
    if not raw:
        return default or DateRange()
    return DateRange(start=parse_date(raw.get("start")), end=parse_date(raw.get("end")))


def normalize_table_filters(raw: Optional[dict]) -> TableFilters:
    raw = raw or {}
    return TableFilters(
        search_term=str(raw.get("search_term") or "").strip(),
        campaign=str(raw.get("campaign") or "").strip(),
        agent=str(raw.get("agent") or "").strip(),
        payment_mode=str(raw.get("payment_mode") or "").strip(),
        date_equals=parse_date(raw.get("date_equals")),
    )


def normalize_filters(raw: dict, *, today: date, defaults: Optional[DashboardFilters] = None) -> DashboardFilters:
    """Coerce loosely-typed UI/API input into :class:`DashboardFilters`.

    Keys missing from ``raw`` keep the value from ``defaults``; the main date
    range falls back to first-of-month through ``today``.
    """
    base = defaults or DashboardFilters(date_range=default_date_range(today), interval_date=today)

    date_range = normalize_date_range(raw.get("date_range"), default=base.date_range) if "date_range" in raw else base.date_range
    table = normalize_table_filters(raw.get("table")) if "table" in raw else base.table

    interval_minutes = raw.get("interval_minutes", base.interval_minutes)
    try:
        interval_minutes = int(interval_minutes)
    except Exception:
        interval_minutes = base.interval_minutes
    if interval_minutes not in (30, 60):
        interval_minutes = base.interval_minutes

    top_limit = raw.get("top_limit", base.top_limit)
    try:
        top_limit = int(top_limit)
    except Exception:
        top_limit = base.top_limit
    top_limit = max(1, min(100, top_limit))

    interval_date = parse_date(raw["interval_date"]) if raw.get("interval_date") else base.interval_date

    return DashboardFilters(
        date_range=date_range,
        table=table,
        agent_search=str(raw.get("agent_search", base.agent_search) or "").strip(),
        agent_date=parse_date(raw["agent_date"]) if "agent_date" in raw else base.agent_date,
        ftd_search=str(raw.get("ftd_search", base.ftd_search) or "").strip(),
        full_day_mode=bool(raw.get("full_day_mode", base.full_day_mode)),
        interval_minutes=interval_minutes,
        interval_date=interval_date or today,
        stats_range=normalize_date_range(raw.get("stats_range"), default=base.stats_range) if "stats_range" in raw else base.stats_range,
        day_wise_range=normalize_date_range(raw.get("day_wise_range"), default=base.day_wise_range) if "day_wise_range" in raw else base.day_wise_range,
        top_limit=top_limit,
    )


# ---------------- Filter engine ----------------
def record_days(records: pd.DataFrame) -> pd.Series:
    """Calendar day of every record (``NaT`` where the timestamp is missing)."""
    if TS_COL not in records.columns:
        return pd.Series(pd.NaT, index=records.index, dtype="datetime64[ns]")
    return records[TS_COL].dt.normalize()


def filter_by_date_range(records: pd.DataFrame, start: object, end: object) -> pd.DataFrame:
    """Keep records whose calendar day falls in ``[start, end]``.

    If either bound is absent or unparseable the input frame itself is
    returned, not a copy.
    """
    start_day = parse_date(start)
    end_day = parse_date(end)
    if start_day is None or end_day is None:
        return records
    mask = record_days(records).between(pd.Timestamp(start_day), pd.Timestamp(end_day))
    return records[mask]


def filter_for_table(records: pd.DataFrame, filters: TableFilters) -> pd.DataFrame:
    if records.empty:
        return records

    mask = pd.Series(True, index=records.index)

    term = filters.search_term.lower()
    if term:
        fields = [c for c in records.columns if c != TS_COL]
        hits = pd.Series(False, index=records.index)
        for col in fields:
            hits |= records[col].astype(str).str.lower().str.contains(term, regex=False, na=False)
        mask &= hits

    if filters.campaign:
        mask &= records.get(CAMPAIGN_COL, pd.Series("", index=records.index)) == filters.campaign
    if filters.agent:
        mask &= records.get(AGENT_COL, pd.Series("", index=records.index)) == filters.agent
    if filters.payment_mode:
        mask &= records.get(MODE_COL, pd.Series("", index=records.index)) == filters.payment_mode
    if filters.date_equals is not None:
        mask &= record_days(records) == pd.Timestamp(filters.date_equals)

    return records[mask]


def _distinct_values(records: pd.DataFrame, col: str) -> List[str]:
    if col not in records.columns:
        return []
    values = records[col].dropna().astype(str)
    return sorted({v for v in values if v})


def filter_options(records: pd.DataFrame) -> Dict[str, Any]:
    """Dropdown contents for the detail table and summary filters."""
    days = record_days(records).dropna()
    return {
        "campaigns": _distinct_values(records, CAMPAIGN_COL),
        "agents": _distinct_values(records, AGENT_COL),
        "payment_modes": _distinct_values(records, MODE_COL),
        "dates": [d.date().isoformat() for d in sorted(set(days.tolist()))],
    }
