from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict

import pandas as pd

from leads.charts import count_bar_chart
from leads.filters import AGENT_COL, DashboardFilters, record_days
from leads.metrics_agents import compute_campaign_summary, compute_mode_summary, group_by_field
from leads.metrics_analytics import group_by_day
from leads.preferences import PreferenceStore


def compute_headline(
    all_records: pd.DataFrame,
    filtered: pd.DataFrame,
    preferences: PreferenceStore,
    now: datetime,
) -> Dict[str, int]:
    today = pd.Timestamp(now).normalize()
    agents = all_records[AGENT_COL].dropna().astype(str) if AGENT_COL in all_records.columns else pd.Series(dtype=str)
    all_agents = [a for a in agents.drop_duplicates().tolist() if a]
    return {
        "total_leads": int(len(filtered)),
        "unique_agents": int(filtered[AGENT_COL].nunique()) if AGENT_COL in filtered.columns else 0,
        "today_leads": int((record_days(all_records) == today).sum()),
        "present_agents": len(preferences.present_agents(all_agents)),
    }


def _series(df: pd.DataFrame, label_col: str) -> Dict[str, Any]:
    return {"labels": [str(v) for v in df[label_col]], "values": [int(v) for v in df["count"]]}


def compute_overview(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    all_records: pd.DataFrame = ctx.get("all_records", pd.DataFrame())
    filtered: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())
    preferences: PreferenceStore = ctx["preferences"]
    now: datetime = ctx["now"]

    by_day = group_by_day(filtered)
    by_day = by_day.assign(day=[d.isoformat() for d in by_day["day"]])
    by_mode = compute_mode_summary(filtered)
    by_campaign = compute_campaign_summary(filtered)
    by_agent = group_by_field(filtered, AGENT_COL)

    charts: Dict[str, Any] = {}
    if not filtered.empty:
        charts = {
            "leads_by_date": count_bar_chart(by_day, "day", title="Lead Date", sort_labels=True),
            "leads_by_mode": count_bar_chart(by_mode, "transaction_mode", title="Transaction Mode", color="#8b5cf6"),
            "leads_by_campaign": count_bar_chart(by_campaign, "source_of_come", title="Source", color="#f59e0b"),
            "leads_by_agent": count_bar_chart(by_agent, AGENT_COL, title="SPOC", color="#10b981"),
        }

    return {
        "filters": asdict(filters),
        "snapshot": {
            "now": pd.Timestamp(now).isoformat(),
            "all_rows": int(len(all_records)),
            "filtered_rows": int(len(filtered)),
        },
        "kpis": compute_headline(all_records, filtered, preferences, now),
        "series": {
            "leads_by_date": _series(by_day, "day"),
            "leads_by_mode": _series(by_mode, "transaction_mode"),
            "leads_by_campaign": _series(by_campaign, "source_of_come"),
        },
        "charts": charts,
    }
