import pandas as pd
import pytest

from leads.sorting import sort_summary, toggle_order


def test_sort_by_count_desc_keeps_tie_order():
    entries = [
        {"agent": "A", "count": 3},
        {"agent": "B", "count": 5},
        {"agent": "C", "count": 5},
    ]

    out = sort_summary(entries, "count", "desc")

    assert list(out["agent"]) == ["B", "C", "A"]


def test_sort_is_idempotent():
    entries = pd.DataFrame({"agent": ["A", "B", "C", "D"], "count": [2, 5, 2, 5]})

    once = sort_summary(entries, "count", "desc")
    twice = sort_summary(once, "count", "desc")

    assert list(once["agent"]) == ["B", "D", "A", "C"]
    assert list(twice["agent"]) == list(once["agent"])


def test_desc_reversed_matches_asc_without_ties():
    entries = pd.DataFrame({"agent": ["A", "B", "C"], "count": [1, 3, 2]})

    desc = list(sort_summary(entries, "count", "desc")["agent"])
    asc = list(sort_summary(entries, "count", "asc")["agent"])

    assert desc[::-1] == asc == ["A", "C", "B"]


def test_numeric_key_treats_missing_as_zero():
    entries = pd.DataFrame({"agent": ["A", "B", "C"], "count": ["2", None, "1"]})

    out = sort_summary(entries, "count", "asc")

    assert list(out["agent"]) == ["B", "C", "A"]


def test_date_key_treats_unparseable_as_epoch():
    entries = pd.DataFrame(
        {
            "unique_id": ["U1", "U2", "U3"],
            "timestamp": ["2024-06-02 10:00", "garbage", "2024-06-01 09:00"],
        }
    )

    out = sort_summary(entries, "timestamp", "asc")

    assert list(out["unique_id"]) == ["U2", "U3", "U1"]


def test_text_key_ignores_case_except_on_ties():
    entries = pd.DataFrame({"spoc_name": ["b", "A", "a", "B"]})

    out = sort_summary(entries, "spoc_name", "asc")

    assert list(out["spoc_name"]) == ["a", "A", "b", "B"]


def test_lowercase_name_sorts_by_letter_not_code_point():
    out = sort_summary([{"spoc_name": "Ravi"}, {"spoc_name": "asha"}], "spoc_name", "asc")
    assert list(out["spoc_name"]) == ["asha", "Ravi"]

    out = sort_summary([{"spoc_name": "asha"}, {"spoc_name": "Ravi"}], "spoc_name", "desc")
    assert list(out["spoc_name"]) == ["Ravi", "asha"]


def test_shorter_prefix_sorts_first():
    out = sort_summary([{"spoc_name": "Ashan"}, {"spoc_name": "asha"}, {"spoc_name": "Asha"}], "spoc_name", "asc")
    assert list(out["spoc_name"]) == ["asha", "Asha", "Ashan"]


def test_centre_key_resolves_through_lookup():
    entries = pd.DataFrame({"spoc_name": ["Asha", "Ravi", "Meena"], "count": [1, 2, 3]})
    centres = {"Ravi": "Gopalan Mall"}

    out = sort_summary(entries, "centre", "asc", centre_of=lambda agent: centres.get(agent, "Rajajinagar"))

    assert list(out["spoc_name"]) == ["Ravi", "Asha", "Meena"]


def test_missing_key_keeps_input_order():
    entries = pd.DataFrame({"spoc_name": ["C", "A", "B"]})
    out = sort_summary(entries, "no_such_column", "desc")
    assert list(out["spoc_name"]) == ["C", "A", "B"]


def test_unknown_order_raises():
    with pytest.raises(ValueError):
        sort_summary([{"count": 1}], "count", "sideways")


def test_empty_input_returns_empty_frame():
    assert sort_summary([], "count", "desc").empty


def test_toggle_order():
    assert toggle_order(None) == "asc"
    assert toggle_order("desc") == "asc"
    assert toggle_order("asc") == "desc"
