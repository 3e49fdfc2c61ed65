import json
from datetime import date, datetime

import pytest

from leads.filters import DateRange
from leads.preferences import (
    ABSENT,
    ATTENDANCE_KEY,
    ATTENDANCE_STAMP_KEY,
    ATTR,
    CENTRES_KEY,
    GOPALAN_MALL,
    PRESENT,
    RAJAJINAGAR,
    JsonFileStore,
    MemoryStore,
    PreferenceStore,
)


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def test_defaults_for_unknown_agent(preferences):
    assert preferences.status_of("Nobody") == PRESENT
    assert preferences.centre_of("Nobody") == RAJAJINAGAR


def test_absent_resets_to_present_on_a_new_day():
    clock = Clock(datetime(2024, 6, 3, 9, 0))
    prefs = PreferenceStore(MemoryStore(), clock=clock)
    prefs.set_attendance("Asha", ABSENT)
    prefs.set_attendance("Ravi", ATTR)

    assert prefs.status_of("Asha") == ABSENT

    clock.now = datetime(2024, 6, 4, 9, 0)
    assert prefs.status_of("Asha") == PRESENT
    assert prefs.status_of("Ravi") == ATTR


def test_reset_happens_once_per_day():
    clock = Clock(datetime(2024, 6, 4, 9, 0))
    store = MemoryStore({ATTENDANCE_KEY: json.dumps({"Asha": ABSENT}), ATTENDANCE_STAMP_KEY: "2024-06-03"})
    prefs = PreferenceStore(store, clock=clock)

    assert prefs.status_of("Asha") == PRESENT
    prefs.set_attendance("Asha", ABSENT)
    assert prefs.status_of("Asha") == ABSENT
    assert store.get(ATTENDANCE_STAMP_KEY) == "2024-06-04"


def test_corrupt_preference_values_fall_back_to_defaults():
    store = MemoryStore({ATTENDANCE_KEY: "{not json", CENTRES_KEY: json.dumps({"Asha": "Mars"})})
    prefs = PreferenceStore(store, clock=lambda: datetime(2024, 6, 3))

    assert prefs.status_of("Asha") == PRESENT
    assert prefs.centre_of("Asha") == RAJAJINAGAR


def test_invalid_status_and_centre_raise(preferences):
    with pytest.raises(ValueError):
        preferences.set_attendance("Asha", "holiday")
    with pytest.raises(ValueError):
        preferences.set_centre("Asha", "Mars")


def test_centre_lookup_and_roster(preferences):
    preferences.set_centre("Ravi", GOPALAN_MALL)
    preferences.set_attendance("Meena", ABSENT)

    lookup = preferences.centre_lookup()
    assert lookup("Ravi") == GOPALAN_MALL
    assert lookup("Asha") == RAJAJINAGAR

    roster = preferences.attendance_roster(["Ravi", "Meena", "", "Asha", "Ravi"])
    assert roster == [
        {"spoc_name": "Asha", "status": PRESENT, "centre": RAJAJINAGAR},
        {"spoc_name": "Meena", "status": ABSENT, "centre": RAJAJINAGAR},
        {"spoc_name": "Ravi", "status": PRESENT, "centre": GOPALAN_MALL},
    ]


def test_present_agents(preferences):
    preferences.set_attendance("Ravi", ATTR)
    assert preferences.present_agents(["Asha", "Ravi", "Meena"]) == ["Asha", "Meena"]


def test_saved_date_range_restored_within_current_month():
    store = MemoryStore({"statsStartDate": "2024-06-02", "statsEndDate": "2024-06-02"})
    prefs = PreferenceStore(store, clock=lambda: datetime(2024, 6, 10, 9, 0))

    restored = prefs.load_date_range("stats")

    assert restored == DateRange(date(2024, 6, 2), date(2024, 6, 10))
    assert store.get("statsEndDate") == "2024-06-10"


def test_saved_date_range_from_old_month_is_ignored():
    store = MemoryStore({"dayWiseStartDate": "2024-05-20", "dayWiseEndDate": "2024-05-31"})
    prefs = PreferenceStore(store, clock=lambda: datetime(2024, 6, 10, 9, 0))

    restored = prefs.load_date_range("day_wise")

    assert restored == DateRange(date(2024, 6, 1), date(2024, 6, 10))
    assert store.get("dayWiseStartDate") == "2024-06-01"


def test_missing_date_range_defaults_to_month_to_date(preferences):
    assert preferences.load_date_range("stats") == DateRange(date(2024, 6, 1), date(2024, 6, 3))


def test_unknown_date_range_name(preferences):
    with pytest.raises(ValueError):
        preferences.load_date_range("weekly")


def test_json_file_store_persists(tmp_path):
    path = tmp_path / "prefs" / "leads.json"
    store = JsonFileStore(path)
    store.set("spocCentres", json.dumps({"Asha": GOPALAN_MALL}))

    reopened = PreferenceStore(JsonFileStore(path), clock=lambda: datetime(2024, 6, 3))
    assert reopened.centre_of("Asha") == GOPALAN_MALL


def test_json_file_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "leads.json"
    path.write_text("not json at all", encoding="utf-8")

    store = JsonFileStore(path)

    assert store.get("spocAttendance") is None
    store.set("spocAttendance", "{}")
    assert json.loads(path.read_text(encoding="utf-8")) == {"spocAttendance": "{}"}
