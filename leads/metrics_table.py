from __future__ import annotations

from typing import Any, Dict, Mapping

import pandas as pd

from leads.data import DISPLAY_NAMES, RECORD_COLUMNS
from leads.filters import TS_COL, DashboardFilters, filter_for_table, filter_options
from leads.sorting import SortOrder, sort_summary

DEFAULT_SORT_KEY = "timestamp"
DEFAULT_SORT_ORDER: SortOrder = "desc"

_COPY_LABELS = [
    ("spoc_name", "SPOC Name"),
    ("customer_name", "Customer Name"),
    ("mobile_number", "Mobile"),
    ("company", "Company"),
    ("state", "State"),
    ("source_of_come", "Source"),
    ("unique_id", "Unique ID"),
    ("amount_received", "Amount"),
    ("transaction_mode", "Transaction Mode"),
    ("filing_type", "Filing Type"),
    ("timestamp", "Timestamp"),
]


def detail_rows(records: pd.DataFrame) -> pd.DataFrame:
    """Records projected onto the detail table columns (raw strings only)."""
    cols = [c for c in RECORD_COLUMNS if c in records.columns]
    return records[cols].fillna("")


def format_lead_copy_text(record: Mapping[str, Any]) -> str:
    """Plain-text block used by the "copy lead details" action."""
    lines = []
    for col, label in _COPY_LABELS:
        value = record.get(col, "")
        lines.append(f"{label} - {'' if value is None else value}")
    return "\n".join(lines)


def find_lead(records: pd.DataFrame, unique_id: str) -> Dict[str, Any] | None:
    if "unique_id" not in records.columns:
        return None
    match = records[records["unique_id"].astype(str) == str(unique_id)]
    if match.empty:
        return None
    return detail_rows(match.head(1)).iloc[0].to_dict()


def compute_table(
    filters: DashboardFilters,
    ctx: Dict[str, Any],
    *,
    sort_key: str = DEFAULT_SORT_KEY,
    order: SortOrder = DEFAULT_SORT_ORDER,
) -> Dict[str, Any]:
    filtered: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())
    rows = filter_for_table(filtered, filters.table)
    centre_of = ctx["preferences"].centre_lookup() if "preferences" in ctx else None
    rows = sort_summary(rows, TS_COL if sort_key == DEFAULT_SORT_KEY and TS_COL in rows.columns else sort_key, order, centre_of=centre_of)
    return {
        "columns": [{"key": c, "label": DISPLAY_NAMES.get(c, c)} for c in RECORD_COLUMNS],
        "rows": detail_rows(rows).to_dict(orient="records"),
        "count": int(len(rows)),
        "sort": {"key": sort_key, "order": order},
        "options": filter_options(filtered),
    }
