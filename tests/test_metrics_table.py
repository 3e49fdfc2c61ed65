from leads.filters import DashboardFilters, TableFilters
from leads.metrics_overview import compute_headline, compute_overview
from leads.metrics_table import compute_table, find_lead, format_lead_copy_text


def test_table_defaults_to_newest_first(ctx):
    out = compute_table(DashboardFilters(), ctx)

    assert [r["unique_id"] for r in out["rows"]] == ["U8", "U7", "U6", "U5", "U4", "U3", "U2"]
    assert out["count"] == 7
    assert out["sort"] == {"key": "timestamp", "order": "desc"}
    assert "ts" not in out["rows"][0]
    assert out["columns"][0] == {"key": "spoc_name", "label": "SPOC Name"}


def test_table_applies_filters_and_sort(ctx):
    filters = DashboardFilters(table=TableFilters(agent="Ravi"))

    out = compute_table(filters, ctx, sort_key="customer_name", order="asc")

    assert [r["customer_name"] for r in out["rows"]] == ["Cust 3", "Cust 4", "Cust 6"]
    assert out["options"]["agents"] == ["Asha", "Meena", "Ravi"]


def test_copy_text_lists_every_field(records):
    record = find_lead(records, "U7")

    text = format_lead_copy_text(record)

    lines = text.split("\n")
    assert lines[0] == "SPOC Name - Asha"
    assert "Mobile - 9000000007" in lines
    assert "Transaction Mode - Cash" in lines
    assert lines[-1] == "Timestamp - 2024-06-03 11:30:00"
    assert len(lines) == 11


def test_copy_text_blank_for_missing_values():
    text = format_lead_copy_text({"spoc_name": "Asha"})
    assert "Customer Name - " in text.split("\n")


def test_find_lead_unknown_id(records):
    assert find_lead(records, "nope") is None


def test_headline_numbers(records, june_records, preferences, now):
    preferences.set_attendance("Kiran", "absent")

    kpis = compute_headline(records, june_records, preferences, now)

    assert kpis == {"total_leads": 7, "unique_agents": 3, "today_leads": 3, "present_agents": 3}


def test_overview_payload(ctx):
    out = compute_overview(DashboardFilters(), ctx)

    assert out["kpis"]["total_leads"] == 7
    assert out["series"]["leads_by_date"] == {"labels": ["2024-06-01", "2024-06-02", "2024-06-03"], "values": [3, 1, 3]}
    assert out["series"]["leads_by_mode"]["labels"] == ["UPI", "Cash", "Card"]
    assert set(out["charts"]) == {"leads_by_date", "leads_by_mode", "leads_by_campaign", "leads_by_agent"}
    assert out["snapshot"]["all_rows"] == 9
