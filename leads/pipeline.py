from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import pandas as pd

from leads.config import Settings
from leads.data import RecordStore
from leads.filters import DashboardFilters, default_date_range, normalize_filters
from leads.metrics_agents import compute_agents
from leads.metrics_analytics import compute_analytics
from leads.metrics_overview import compute_overview
from leads.metrics_table import DEFAULT_SORT_KEY, DEFAULT_SORT_ORDER, compute_table
from leads.preferences import JsonFileStore, KeyValueStore, PreferenceStore
from leads.sorting import SortOrder, toggle_order

logger = logging.getLogger(__name__)


@dataclass
class TableSort:
    key: str = DEFAULT_SORT_KEY
    order: SortOrder = DEFAULT_SORT_ORDER


@dataclass
class DashboardState:
    """Everything one dashboard session needs: data, preferences, UI selections and a clock."""

    store: RecordStore
    preferences: PreferenceStore
    filters: DashboardFilters
    settings: Settings = field(default_factory=Settings)
    table_sort: TableSort = field(default_factory=TableSort)
    clock: Callable[[], datetime] = datetime.now

    def now(self) -> datetime:
        return self.clock()


def build_state(
    settings: Settings,
    kv_store: Optional[KeyValueStore] = None,
    *,
    clock: Callable[[], datetime] = datetime.now,
    store: Optional[RecordStore] = None,
) -> DashboardState:
    """Fresh session state; the stats and day-wise ranges come from saved preferences."""
    preferences = PreferenceStore(kv_store if kv_store is not None else JsonFileStore(settings.prefs_path), clock=clock)
    today = clock().date()
    filters = DashboardFilters(
        date_range=default_date_range(today),
        interval_minutes=settings.interval_minutes,
        interval_date=today,
        stats_range=preferences.load_date_range("stats"),
        day_wise_range=preferences.load_date_range("day_wise"),
        top_limit=settings.top_limit,
    )
    record_store = store if store is not None else RecordStore()
    record_store.apply_date_range(filters.date_range)
    return DashboardState(store=record_store, preferences=preferences, filters=filters, settings=settings, clock=clock)


def prepare_context(state: DashboardState) -> Dict[str, Any]:
    return {
        "all_records": state.store.all,
        "filtered_records": state.store.filtered,
        "preferences": state.preferences,
        "now": state.now(),
    }


def apply_filters(state: DashboardState, raw: Dict[str, Any]) -> DashboardFilters:
    """Merge UI/API selections into the state and re-narrow the filtered set."""
    filters = normalize_filters(raw, today=state.now().date(), defaults=state.filters)
    if filters.date_range != state.store.date_range:
        state.store.apply_date_range(filters.date_range)
    if "stats_range" in raw and filters.stats_range.is_set:
        state.preferences.save_date_range("stats", filters.stats_range)
    if "day_wise_range" in raw and filters.day_wise_range.is_set:
        state.preferences.save_date_range("day_wise", filters.day_wise_range)
    state.filters = filters
    return filters


def set_table_sort(state: DashboardState, key: str, order: Optional[SortOrder] = None) -> TableSort:
    """Sort the detail table by ``key``; clicking the active key again flips the order."""
    if order is None:
        order = toggle_order(state.table_sort.order) if key == state.table_sort.key else "desc"
    if order not in ("asc", "desc"):
        raise ValueError(f"Unknown sort order '{order}'. Use 'asc' or 'desc'")
    state.table_sort = replace(state.table_sort, key=key, order=order)
    return state.table_sort


def refresh(state: DashboardState) -> pd.DataFrame:
    """Fetch the feed into the record store; raises ``FeedError`` and keeps old data on failure."""
    if not state.settings.data_url:
        raise ValueError("No data source configured. Set LEADS_DATA_URL")
    return state.store.load(state.settings.data_url, timeout=state.settings.fetch_timeout)


def recompute(state: DashboardState) -> Dict[str, Any]:
    """Full render model for the current state."""
    ctx = prepare_context(state)
    f = state.filters
    model = {
        "overview": compute_overview(f, ctx),
        "analytics": compute_analytics(f, ctx),
        "agents": compute_agents(f, ctx),
        "table": compute_table(f, ctx, sort_key=state.table_sort.key, order=state.table_sort.order),
        "status": {
            "loaded_at": state.store.loaded_at.isoformat() if state.store.loaded_at else None,
            "error": state.store.last_error,
        },
    }
    logger.debug("Recomputed dashboard: %s filtered rows", len(ctx["filtered_records"]))
    return model
