from __future__ import annotations

import logging
import re
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd
import requests

from leads.filters import DateRange, filter_by_date_range, parse_timestamp

logger = logging.getLogger(__name__)

FEED_COLUMNS = {
    "SPOC Name": "spoc_name",
    "Customer Name": "customer_name",
    "Mobile Number": "mobile_number",
    "Company": "company",
    "State": "state",
    "Source of come": "source_of_come",
    "Unique ID": "unique_id",
    "Amount Received": "amount_received",
    "Transaction Mode": "transaction_mode",
    "Filing Type": "filing_type",
    "Timestamp": "timestamp",
}
DISPLAY_NAMES = {col: header for header, col in FEED_COLUMNS.items()}
RECORD_COLUMNS = list(FEED_COLUMNS.values())


class FeedError(RuntimeError):
    """Raised when the lead feed cannot be fetched."""


def normalize_header(value: str) -> str:
    text = value.strip()
    if text in FEED_COLUMNS:
        return FEED_COLUMNS[text]
    return re.sub(r"[^0-9a-z]+", "_", text.lower()).strip("_")


def _clean_field(value: str) -> str:
    return value.strip().replace('"', "").strip()


def empty_records() -> pd.DataFrame:
    df = pd.DataFrame({col: pd.Series(dtype=object) for col in RECORD_COLUMNS})
    df["ts"] = pd.Series(dtype="datetime64[ns]")
    return df


def attach_timestamps(df: pd.DataFrame) -> pd.DataFrame:
    parsed = df["timestamp"].map(parse_timestamp) if not df.empty else pd.Series(dtype=object)
    df["ts"] = pd.to_datetime(parsed, errors="coerce")
    return df


def parse_feed(text: str) -> pd.DataFrame:
    """Parse comma-separated feed text into a records frame.

    The split is naive: a field value containing a comma shifts every later
    column of its row. Missing trailing fields become empty strings.
    """
    lines = [line for line in (text or "").split("\n") if line.strip()]
    if not lines:
        return empty_records()

    headers = [normalize_header(_clean_field(h)) for h in lines[0].split(",")]
    columns: List[str] = []
    for h in headers:
        if h and h not in columns:
            columns.append(h)
    for col in RECORD_COLUMNS:
        if col not in columns:
            columns.append(col)

    rows: List[Dict[str, str]] = []
    for line in lines[1:]:
        values = [_clean_field(v) for v in line.split(",")]
        row = {col: "" for col in columns}
        for idx, header in enumerate(headers):
            if header:
                row[header] = values[idx] if idx < len(values) else ""
        rows.append(row)

    if not rows:
        return empty_records()
    df = pd.DataFrame(rows, columns=columns)
    return attach_timestamps(df)


def _is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def _http_get(url: str, timeout: float) -> requests.Response:
    headers = {
        "User-Agent": "Mozilla/5.0",
        "Accept": "text/csv,*/*",
    }
    return requests.get(url, headers=headers, timeout=timeout, allow_redirects=True)


def fetch_feed(source: str, *, timeout: float = 30.0) -> str:
    """Return the raw feed text from an http(s) URL or a local file path."""
    if not source:
        raise FeedError("No lead feed source configured")

    if _is_url(source):
        logger.info("Fetching data from: %s", source)
        try:
            resp = _http_get(source, timeout)
        except requests.RequestException as exc:
            raise FeedError(f"Failed to load data: {exc}") from exc
        if not resp.ok:
            raise FeedError(f"HTTP error! status: {resp.status_code}")
        text = resp.text
    else:
        path = Path(source)
        if not path.is_file():
            raise FeedError(f"Lead feed file '{path}' was not found")
        text = path.read_text(encoding="utf-8-sig")

    logger.info("CSV text length: %s", len(text))
    return text


@lru_cache(maxsize=4)
def _load_file_cached(path: str, signature: Tuple[float, int]) -> pd.DataFrame:
    return parse_feed(fetch_feed(path))


def load_records(source: str, *, timeout: float = 30.0) -> pd.DataFrame:
    """Fetch and parse the feed; local files are cached on (mtime, size)."""
    if source and not _is_url(source) and Path(source).is_file():
        stat = Path(source).stat()
        records = _load_file_cached(str(Path(source).resolve()), (stat.st_mtime, stat.st_size))
    else:
        records = parse_feed(fetch_feed(source, timeout=timeout))
    logger.info("Parsed data: %s rows", len(records))
    return records


class RecordStore:
    """Holds the last fetched snapshot ("all") and its date-filtered subset.

    Both frames are treated as read-only; a new fetch rebinds them rather
    than mutating rows in place.
    """

    def __init__(self, records: Optional[pd.DataFrame] = None) -> None:
        self._all = records if records is not None else empty_records()
        self._date_range = DateRange()
        self._filtered = self._all
        self.loaded_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

    @property
    def all(self) -> pd.DataFrame:
        return self._all

    @property
    def filtered(self) -> pd.DataFrame:
        return self._filtered

    @property
    def date_range(self) -> DateRange:
        return self._date_range

    def replace(self, records: pd.DataFrame, *, loaded_at: Optional[datetime] = None) -> None:
        self._all = records
        self._filtered = filter_by_date_range(records, self._date_range.start, self._date_range.end)
        self.loaded_at = loaded_at or datetime.now()
        self.last_error = None

    def apply_date_range(self, date_range: DateRange) -> pd.DataFrame:
        self._date_range = date_range
        self._filtered = filter_by_date_range(self._all, date_range.start, date_range.end)
        return self._filtered

    def load(self, source: str, *, timeout: float = 30.0) -> pd.DataFrame:
        """Fetch a fresh snapshot; on failure the previous one stays in place."""
        try:
            records = load_records(source, timeout=timeout)
        except FeedError as exc:
            self.last_error = str(exc)
            logger.error("Data loading error: %s", exc)
            raise
        self.replace(records)
        logger.info("Data loaded: %s rows", len(records))
        return records
