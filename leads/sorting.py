from __future__ import annotations

from typing import Callable, Iterable, Literal, Mapping, Optional, Union

import pandas as pd

from leads.filters import parse_timestamp

SortOrder = Literal["asc", "desc"]

NUMERIC_KEYS = frozenset({"count", "rank"})
DATE_KEYS = frozenset({"timestamp", "ts", "day"})
CENTRE_KEY = "centre"
AGENT_KEYS = ("spoc_name", "agent")

_SORT_COL = "__sort_key"
_EPOCH = pd.Timestamp(0)


def _as_text(value: object) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def collation_key(text: str) -> str:
    """Case-insensitive order; on otherwise equal text lowercase sorts first."""
    return f"{text.casefold()}\x00{text.swapcase()}"


def _agent_column(frame: pd.DataFrame) -> Optional[str]:
    for col in AGENT_KEYS:
        if col in frame.columns:
            return col
    return None


def sort_key_values(frame: pd.DataFrame, key: str, *, centre_of: Optional[Callable[[str], str]] = None) -> pd.Series:
    """Comparable values for ``key``: numeric, datetime or collation keys."""
    if key == CENTRE_KEY and centre_of is not None and _agent_column(frame):
        raw = frame[_agent_column(frame)].map(lambda agent: centre_of(_as_text(agent)))
    elif key in frame.columns:
        raw = frame[key]
    else:
        raw = pd.Series("", index=frame.index)

    if key in NUMERIC_KEYS:
        return pd.to_numeric(raw, errors="coerce").fillna(0)
    if key in DATE_KEYS:
        return pd.to_datetime(raw.map(parse_timestamp), errors="coerce").fillna(_EPOCH)
    return raw.map(lambda v: collation_key(_as_text(v)))


def sort_summary(
    entries: Union[pd.DataFrame, Iterable[Mapping[str, object]]],
    key: str,
    order: SortOrder = "desc",
    *,
    centre_of: Optional[Callable[[str], str]] = None,
) -> pd.DataFrame:
    """Stable sort of summary/detail rows by ``key``; ties keep input order."""
    if order not in ("asc", "desc"):
        raise ValueError(f"Unknown sort order '{order}'. Use 'asc' or 'desc'")
    frame = entries if isinstance(entries, pd.DataFrame) else pd.DataFrame(list(entries))
    if frame.empty:
        return frame.copy()
    keyed = frame.assign(**{_SORT_COL: sort_key_values(frame, key, centre_of=centre_of)})
    out = keyed.sort_values(_SORT_COL, ascending=(order == "asc"), kind="stable")
    return out.drop(columns=[_SORT_COL])


def toggle_order(current: Optional[str]) -> SortOrder:
    """Next order when a header is clicked again (unsorted starts at desc -> asc)."""
    return "desc" if current == "asc" else "asc"
