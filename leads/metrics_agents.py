from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Dict, Optional

import pandas as pd

from leads.filters import AGENT_COL, CAMPAIGN_COL, MODE_COL, TS_COL, DashboardFilters, record_days
from leads.preferences import PreferenceStore
from leads.sorting import sort_summary


def group_by_field(records: pd.DataFrame, column: str) -> pd.DataFrame:
    """Count records per value of ``column`` in first-seen order (no ranking)."""
    if column not in records.columns or records.empty:
        return pd.DataFrame({column: pd.Series(dtype=object), "count": pd.Series(dtype="int64")})
    counts = records.groupby(column, sort=False, dropna=False).size().reset_index(name="count")
    counts["count"] = counts["count"].astype("int64")
    return counts


def _with_agent(records: pd.DataFrame) -> pd.DataFrame:
    if AGENT_COL not in records.columns:
        return records.iloc[0:0]
    return records[records[AGENT_COL].fillna("").astype(str) != ""]


def _on_day(records: pd.DataFrame, day: date) -> pd.DataFrame:
    return records[record_days(records) == pd.Timestamp(day)]


def rank_agents(records: pd.DataFrame, limit: Optional[int] = None) -> pd.DataFrame:
    """Agents by descending lead count; ties keep first-seen order."""
    ranked = sort_summary(group_by_field(_with_agent(records), AGENT_COL), "count", "desc")
    if limit is not None:
        ranked = ranked.head(limit)
    ranked = ranked.reset_index(drop=True)
    ranked.insert(0, "rank", range(1, len(ranked) + 1))
    return ranked


def compute_month_to_date_top(all_records: pd.DataFrame, now: datetime, limit: int = 10) -> pd.DataFrame:
    now_ts = pd.Timestamp(now)
    start = now_ts.normalize().replace(day=1)
    mtd = all_records[all_records[TS_COL].between(start, now_ts)] if TS_COL in all_records.columns else all_records.iloc[0:0]
    return rank_agents(mtd, limit)


def compute_today_top(all_records: pd.DataFrame, now: datetime, limit: int = 10) -> pd.DataFrame:
    return rank_agents(_on_day(all_records, pd.Timestamp(now).date()), limit)


def compute_zero_lead_agents(all_records: pd.DataFrame, preferences: PreferenceStore, now: datetime) -> pd.DataFrame:
    """Agents marked present today who have no lead dated today."""
    agents = _with_agent(all_records)[AGENT_COL].astype(str).drop_duplicates().tolist()
    active_today = set(_with_agent(_on_day(all_records, pd.Timestamp(now).date()))[AGENT_COL].astype(str))
    lookup = preferences.centre_lookup()
    idle = [agent for agent in preferences.present_agents(agents) if agent not in active_today]
    return pd.DataFrame({AGENT_COL: idle, "centre": [lookup(a) for a in idle]}, columns=[AGENT_COL, "centre"])


def _attach_centre(summary: pd.DataFrame, centre_of: Optional[Callable[[str], str]]) -> pd.DataFrame:
    if centre_of is None or AGENT_COL not in summary.columns:
        return summary
    out = summary.copy()
    position = list(out.columns).index(AGENT_COL) + 1
    out.insert(position, "centre", [centre_of(str(a)) for a in out[AGENT_COL]])
    return out


def compute_agent_summary(
    filtered: pd.DataFrame,
    *,
    search_term: str = "",
    date_equals: Optional[date] = None,
    centre_of: Optional[Callable[[str], str]] = None,
) -> pd.DataFrame:
    """Per-agent counts over the filtered records, descending by count."""
    base = _with_agent(filtered)
    if date_equals is not None:
        base = _on_day(base, date_equals)
    term = (search_term or "").lower()
    if term:
        base = base[base[AGENT_COL].astype(str).str.lower().str.contains(term, regex=False, na=False)]
    summary = sort_summary(group_by_field(base, AGENT_COL), "count", "desc").reset_index(drop=True)
    return _attach_centre(summary, centre_of)


def compute_ftd_summary(
    filtered: pd.DataFrame,
    now: datetime,
    *,
    search_term: str = "",
    centre_of: Optional[Callable[[str], str]] = None,
) -> pd.DataFrame:
    """Per-agent counts of today's leads (FTD) inside the filtered records."""
    return compute_agent_summary(
        filtered,
        search_term=search_term,
        date_equals=pd.Timestamp(now).date(),
        centre_of=centre_of,
    )


def compute_campaign_summary(filtered: pd.DataFrame) -> pd.DataFrame:
    return group_by_field(filtered, CAMPAIGN_COL)


def compute_mode_summary(filtered: pd.DataFrame) -> pd.DataFrame:
    return group_by_field(filtered, MODE_COL)


def _table(df: pd.DataFrame) -> Dict[str, Any]:
    total = int(df["count"].sum()) if "count" in df.columns and not df.empty else 0
    return {"rows": df.to_dict(orient="records"), "total": total}


def compute_agents(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    all_records: pd.DataFrame = ctx.get("all_records", pd.DataFrame())
    filtered: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())
    preferences: PreferenceStore = ctx["preferences"]
    now: datetime = ctx["now"]
    centre_of = preferences.centre_lookup()

    agent_summary = compute_agent_summary(
        filtered, search_term=filters.agent_search, date_equals=filters.agent_date, centre_of=centre_of
    )
    ftd = compute_ftd_summary(filtered, now, search_term=filters.ftd_search, centre_of=centre_of)
    top_mtd = _attach_centre(compute_month_to_date_top(all_records, now, filters.top_limit), centre_of)
    top_today = _attach_centre(compute_today_top(all_records, now, filters.top_limit), centre_of)
    zero = compute_zero_lead_agents(all_records, preferences, now)

    return {
        "agent_summary": _table(agent_summary),
        "ftd_summary": _table(ftd),
        "campaign_summary": _table(compute_campaign_summary(filtered)),
        "top_mtd": _table(top_mtd),
        "top_today": _table(top_today),
        "zero_leads": {"rows": zero.to_dict(orient="records"), "count": int(len(zero))},
    }
