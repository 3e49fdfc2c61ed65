"""Agent preferences (attendance, work centre) and saved date ranges.

Everything is persisted as string values in an injected key-value store, so
the dashboard only depends on ``get(key)`` and ``set(key, value)``.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from leads.filters import DateRange, default_date_range, parse_date

logger = logging.getLogger(__name__)

ATTENDANCE_KEY = "spocAttendance"
ATTENDANCE_STAMP_KEY = "attendanceLastUpdate"
CENTRES_KEY = "spocCentres"

PRESENT = "present"
ABSENT = "absent"
ATTR = "attr"
STATUSES = (PRESENT, ABSENT, ATTR)

RAJAJINAGAR = "Rajajinagar"
GOPALAN_MALL = "Gopalan Mall"
CENTRES = (RAJAJINAGAR, GOPALAN_MALL)

# Picker name -> storage key prefix
DATE_RANGE_PREFIXES = {"stats": "stats", "day_wise": "dayWise"}


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:  # pragma: no cover - protocol
        ...

    def set(self, key: str, value: str) -> None:  # pragma: no cover - protocol
        ...


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """Key-value store persisted as one JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._data: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._data is not None:
            return self._data
        data: Dict[str, str] = {}
        if self.path.exists():
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                logger.warning("Ignoring unreadable preference file %s", self.path)
                raw = {}
            if isinstance(raw, dict):
                data = {str(k): str(v) for k, v in raw.items() if v is not None}
        self._data = data
        return data

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)


class PreferenceStore:
    def __init__(self, store: KeyValueStore, *, clock: Callable[[], datetime] = datetime.now) -> None:
        self._store = store
        self._clock = clock

    def _today(self) -> date:
        return self._clock().date()

    def _read_map(self, key: str) -> Dict[str, str]:
        raw = self._store.get(key)
        if not raw:
            return {}
        try:
            value = json.loads(raw)
        except ValueError:
            logger.debug("Preference %s is not valid JSON; using defaults", key)
            return {}
        if not isinstance(value, dict):
            logger.debug("Preference %s is not a mapping; using defaults", key)
            return {}
        return {str(k): str(v) for k, v in value.items()}

    def _write_map(self, key: str, value: Dict[str, str]) -> None:
        self._store.set(key, json.dumps(value))

    # ---------------- Attendance ----------------
    def attendance(self) -> Dict[str, str]:
        """Stored attendance map, after the once-a-day absent -> present reset."""
        attendance = self._read_map(ATTENDANCE_KEY)
        today = self._today().isoformat()
        if self._store.get(ATTENDANCE_STAMP_KEY) != today:
            attendance = {agent: (PRESENT if status == ABSENT else status) for agent, status in attendance.items()}
            self._store.set(ATTENDANCE_STAMP_KEY, today)
            self._write_map(ATTENDANCE_KEY, attendance)
        return attendance

    def status_of(self, agent: str, attendance: Optional[Dict[str, str]] = None) -> str:
        attendance = self.attendance() if attendance is None else attendance
        status = attendance.get(agent, PRESENT)
        return status if status in STATUSES else PRESENT

    def set_attendance(self, agent: str, status: str) -> None:
        status = (status or "").strip().lower()
        if status not in STATUSES:
            raise ValueError(f"Unknown attendance status '{status}'. Expected one of {list(STATUSES)}")
        attendance = self.attendance()
        attendance[agent] = status
        self._write_map(ATTENDANCE_KEY, attendance)

    def present_agents(self, agents: Iterable[str]) -> List[str]:
        attendance = self.attendance()
        return [agent for agent in agents if self.status_of(agent, attendance) == PRESENT]

    # ---------------- Centres ----------------
    def centres(self) -> Dict[str, str]:
        return self._read_map(CENTRES_KEY)

    def centre_of(self, agent: str) -> str:
        centre = self.centres().get(agent, RAJAJINAGAR)
        return centre if centre in CENTRES else RAJAJINAGAR

    def centre_lookup(self) -> Callable[[str], str]:
        """Snapshot resolver for bulk lookups (one storage read)."""
        centres = self.centres()

        def lookup(agent: str) -> str:
            centre = centres.get(agent, RAJAJINAGAR)
            return centre if centre in CENTRES else RAJAJINAGAR

        return lookup

    def set_centre(self, agent: str, centre: str) -> None:
        centre = (centre or "").strip()
        if centre not in CENTRES:
            raise ValueError(f"Unknown centre '{centre}'. Expected one of {list(CENTRES)}")
        centres = self.centres()
        centres[agent] = centre
        self._write_map(CENTRES_KEY, centres)

    # ---------------- Saved date ranges ----------------
    def _range_keys(self, name: str) -> tuple[str, str]:
        prefix = DATE_RANGE_PREFIXES.get(name)
        if prefix is None:
            raise ValueError(f"Unknown date range '{name}'. Expected one of {sorted(DATE_RANGE_PREFIXES)}")
        return f"{prefix}StartDate", f"{prefix}EndDate"

    def load_date_range(self, name: str) -> DateRange:
        """Restore a saved picker range.

        A saved start is only reused while it is in the current month, and
        the end is always moved to today. The result is written back.
        """
        start_key, end_key = self._range_keys(name)
        today = self._today()
        saved_start = self._store.get(start_key)
        saved_end = self._store.get(end_key)

        restored = default_date_range(today)
        if saved_start and saved_end and saved_start.startswith(today.strftime("%Y-%m")):
            start = parse_date(saved_start)
            if start is not None:
                restored = DateRange(start=start, end=today)

        self.save_date_range(name, restored)
        return restored

    def save_date_range(self, name: str, date_range: DateRange) -> None:
        start_key, end_key = self._range_keys(name)
        values = date_range.as_strings()
        self._store.set(start_key, values["start"])
        self._store.set(end_key, values["end"])

    # ---------------- Roster ----------------
    def attendance_roster(self, agents: Iterable[str]) -> List[Dict[str, str]]:
        """Sorted agent list with status and centre, for the attendance editor."""
        attendance = self.attendance()
        lookup = self.centre_lookup()
        return [
            {"spoc_name": agent, "status": self.status_of(agent, attendance), "centre": lookup(agent)}
            for agent in sorted({a for a in agents if a})
        ]
