from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd

from leads.charts import count_bar_chart, count_line_chart
from leads.filters import TS_COL, DashboardFilters, filter_by_date_range, parse_date, record_days

WINDOW_START_HOUR = 7
WINDOW_END_HOUR = 21
# Interval size (minutes) -> number of buckets in the 07:00-21:00 window
INTERVAL_BUCKETS = {30: 28, 60: 15}


def _dated(records: pd.DataFrame) -> pd.DataFrame:
    if TS_COL not in records.columns:
        return records.iloc[0:0]
    return records.dropna(subset=[TS_COL])


def group_by_day(records: pd.DataFrame) -> pd.DataFrame:
    """Lead count per calendar day, ascending; undated records are dropped."""
    dated = _dated(records)
    if dated.empty:
        return pd.DataFrame({"day": pd.Series(dtype=object), "count": pd.Series(dtype="int64")})
    counts = dated.groupby(record_days(dated)).size().rename_axis("day").reset_index(name="count")
    counts["day"] = counts["day"].dt.date
    counts["count"] = counts["count"].astype("int64")
    return counts


def interval_labels(interval_minutes: int = 30) -> List[str]:
    size = _bucket_count(interval_minutes)
    labels = []
    for idx in range(size):
        minutes = WINDOW_START_HOUR * 60 + idx * interval_minutes
        labels.append(f"{minutes // 60}:{minutes % 60:02d}")
    return labels


def _bucket_count(interval_minutes: int) -> int:
    try:
        return INTERVAL_BUCKETS[int(interval_minutes)]
    except (KeyError, TypeError, ValueError):
        raise ValueError(f"Unsupported interval '{interval_minutes}'. Use 30 or 60 minutes") from None


def group_by_interval(records: pd.DataFrame, target_date: object, interval_minutes: int = 30) -> pd.DataFrame:
    """Fixed-length lead counts per interval of ``target_date`` between 07:00 and 21:00.

    Records outside the window or whose bucket index falls past the last
    bucket are dropped, never clamped.
    """
    size = _bucket_count(interval_minutes)
    out = pd.DataFrame({"label": interval_labels(interval_minutes), "count": [0] * size})
    day = parse_date(target_date)
    if day is None:
        return out

    dated = _dated(records)
    on_day = dated[record_days(dated) == pd.Timestamp(day)]
    if on_day.empty:
        return out

    hours = on_day[TS_COL].dt.hour
    minutes = on_day[TS_COL].dt.minute
    index = ((hours - WINDOW_START_HOUR) * 60 + minutes) // int(interval_minutes)
    in_window = hours.between(WINDOW_START_HOUR, WINDOW_END_HOUR) & (index >= 0) & (index < size)
    counts = index[in_window].value_counts().reindex(range(size), fill_value=0)
    out["count"] = counts.astype("int64").to_numpy()
    return out


# ---------------- Lead stats ----------------
@dataclass(frozen=True)
class DayCount:
    count: int = 0
    day: Optional[date] = None


@dataclass(frozen=True)
class LeadStats:
    best_day: DayCount = field(default_factory=DayCount)
    yesterday: int = 0
    lowest_day: DayCount = field(default_factory=DayCount)
    today: int = 0
    full_day_mode: bool = False

    @property
    def best_difference(self) -> int:
        return self.today - self.best_day.count

    @property
    def yesterday_difference(self) -> int:
        return self.today - self.yesterday

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        for key in ("best_day", "lowest_day"):
            day = payload[key]["day"]
            payload[key]["day"] = day.isoformat() if day else None
        payload["best_difference"] = self.best_difference
        payload["yesterday_difference"] = self.yesterday_difference
        payload["best_comparison"] = comparison_text(self.best_difference)
        payload["yesterday_comparison"] = comparison_text(self.yesterday_difference)
        return payload


def comparison_text(difference: int) -> str:
    verb = "Ahead" if difference >= 0 else "Behind"
    return f"{verb} by {abs(difference)} leads"


def daily_counts(records: pd.DataFrame, now: datetime, *, full_day_mode: bool) -> Dict[date, int]:
    """Per-day counts in first-seen day order.

    In partial mode today only counts records up to ``now`` and every other
    day only counts records up to the same hour:minute, so days are compared
    at equal elapsed time.
    """
    now_ts = pd.Timestamp(now)
    dated = _dated(records)
    if dated.empty:
        return {}
    days = record_days(dated)
    if full_day_mode:
        counted = pd.Series(True, index=dated.index)
    else:
        cutoff = days + pd.Timedelta(hours=now_ts.hour, minutes=now_ts.minute)
        cutoff = cutoff.where(days != now_ts.normalize(), now_ts)
        counted = dated[TS_COL] <= cutoff
    sums = counted.astype("int64").groupby(days, sort=False).sum()
    return {day.date(): int(count) for day, count in sums.items()}


def count_today(records: pd.DataFrame, now: datetime, *, full_day_mode: bool) -> int:
    now_ts = pd.Timestamp(now)
    dated = _dated(records)
    on_today = dated[record_days(dated) == now_ts.normalize()]
    if not full_day_mode:
        on_today = on_today[on_today[TS_COL] <= now_ts]
    return int(len(on_today))


def compute_lead_stats(
    all_records: pd.DataFrame,
    filtered_records: pd.DataFrame,
    *,
    full_day_mode: bool,
    now: datetime,
) -> LeadStats:
    today = pd.Timestamp(now).date()
    per_day = daily_counts(filtered_records, now, full_day_mode=full_day_mode)

    best = DayCount()
    lowest: Optional[DayCount] = None
    for day, count in per_day.items():
        if day == today:
            continue
        if count > best.count:
            best = DayCount(count=count, day=day)
        if lowest is None or count < lowest.count:
            lowest = DayCount(count=count, day=day)

    return LeadStats(
        best_day=best,
        yesterday=per_day.get(today - timedelta(days=1), 0),
        lowest_day=lowest or DayCount(),
        today=count_today(all_records, now, full_day_mode=full_day_mode),
        full_day_mode=full_day_mode,
    )


def compute_day_wise(all_records: pd.DataFrame, start: object, end: object) -> pd.DataFrame:
    return group_by_day(filter_by_date_range(all_records, start, end))


def compute_analytics(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    all_records: pd.DataFrame = ctx.get("all_records", pd.DataFrame())
    now: datetime = ctx["now"]

    day_wise = compute_day_wise(all_records, filters.day_wise_range.start, filters.day_wise_range.end)
    day_wise_disp = day_wise.assign(day=[d.strftime("%d/%m/%Y") for d in day_wise["day"]])

    interval_date = filters.interval_date or now.date()
    intervals = group_by_interval(all_records, interval_date, filters.interval_minutes)

    stats_source = filter_by_date_range(all_records, filters.stats_range.start, filters.stats_range.end)
    stats = compute_lead_stats(all_records, stats_source, full_day_mode=filters.full_day_mode, now=now)

    charts: Dict[str, Any] = {}
    if not day_wise.empty:
        charts["day_wise"] = count_bar_chart(day_wise_disp, "day", title="Date")
    interval_title = "30-Minute Intervals" if filters.interval_minutes == 30 else "Hourly Intervals"
    charts["intervals"] = count_line_chart(intervals, "label", title="Time", x_title=interval_title)

    return {
        "day_wise": {
            "range": filters.day_wise_range.as_strings(),
            "labels": day_wise_disp["day"].tolist(),
            "values": [int(v) for v in day_wise["count"]],
        },
        "intervals": {
            "date": interval_date.isoformat(),
            "interval_minutes": filters.interval_minutes,
            "labels": intervals["label"].tolist(),
            "values": [int(v) for v in intervals["count"]],
        },
        "lead_stats": {"range": filters.stats_range.as_strings(), **stats.to_dict()},
        "charts": charts,
    }
