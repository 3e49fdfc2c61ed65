import pandas as pd
import streamlit as st
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, List, Optional

from leads.config import configure_logging, load_settings
from leads.connectivity import ConnectivityMonitor, http_probe
from leads.data import DISPLAY_NAMES, FeedError
from leads.filters import AGENT_COL, DateRange
from leads.metrics_table import find_lead, format_lead_copy_text
from leads.pipeline import DashboardState, apply_filters, build_state, recompute, refresh, set_table_sort
from leads.preferences import CENTRES, STATUSES


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .card-actions {font-size: 0.9rem;color: #2563eb;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        .ahead {color: #059669;font-weight: 600;}
        .behind {color: #dc2626;font-weight: 600;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, actions: Optional[str] = None):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
            <div class="card-actions">{actions or ""}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(date_range: DateRange, full_day_mode: bool, online: Optional[bool]) -> str:
    values = date_range.as_strings()
    range_chip = f"Dates: {values['start']} to {values['end']}" if date_range.is_set else "Dates: All"
    mode_chip = "Stats: Full day" if full_day_mode else "Stats: Until now"
    status_chip = "Offline" if online is False else "Online"
    return "".join([f"<span class='chip'>{txt}</span>" for txt in [range_chip, mode_chip, status_chip]])


def render_page_header(title: str, breadcrumb: str, filter_summary_html: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    top = st.container()
    c1, c2 = top.columns([7, 3])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        btn_cols = st.columns(2)
        if btn_cols[0].button("Refresh", key=f"refresh_{export_name}"):
            st.session_state["_force_refresh"] = True
            st.rerun()
        if export_df is not None and not export_df.empty:
            btn_cols[1].download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


def _date_pair(value: Any) -> Dict[str, Optional[str]]:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return {"start": value[0].isoformat(), "end": value[1].isoformat()}
    return {"start": None, "end": None}


def _range_value(date_range: DateRange, today: date):
    return (date_range.start or today, date_range.end or today)


def _rows_frame(rows: List[Dict[str, Any]], rename: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    df = pd.DataFrame(rows)
    return df.rename(columns=rename or {}) if not df.empty else df


def _comparison_html(text: str, difference: int) -> str:
    css = "ahead" if difference >= 0 else "behind"
    return f"<span class='{css}'>{text}</span>"


@st.cache_resource
def get_connectivity_monitor(url: str, interval: float) -> ConnectivityMonitor:
    """One background checker per process, shared by every browser session."""
    monitor = ConnectivityMonitor(http_probe(url), interval=interval)
    monitor.start()
    return monitor


SUMMARY_COLUMNS = {
    "rank": "#",
    "spoc_name": "SPOC Name",
    "centre": "Centre",
    "count": "Leads",
    "source_of_come": "Source",
    "transaction_mode": "Transaction Mode",
}


# ---------- UI setup ----------
st.set_page_config(page_title="Lead Dashboard", layout="wide")
inject_base_styles()
st.title("Lead Dashboard")
st.caption("Daily lead flow by SPOC, source and payment mode.")

settings = load_settings()
if "dashboard_state" not in st.session_state:
    configure_logging(settings)
    st.session_state["dashboard_state"] = build_state(settings)
state: DashboardState = st.session_state["dashboard_state"]

st.session_state["connectivity"] = get_connectivity_monitor(settings.connectivity_url, settings.check_interval)
online = st.session_state["connectivity"].online
if online is False:
    st.warning("You are offline. Showing the last loaded data.")

if not settings.data_url:
    st.info("No data source configured. Set LEADS_DATA_URL to the lead feed URL or a local CSV path.")
    st.stop()

if state.store.loaded_at is None or st.session_state.pop("_force_refresh", False):
    try:
        with st.spinner("Loading leads..."):
            refresh(state)
    except FeedError as exc:
        st.error(f"Error loading data: {exc}")
        if state.store.loaded_at is None:
            st.stop()

today = state.now().date()
current = state.filters

# ----- Sidebar: navigation + filters -----
with st.sidebar:
    st.markdown("### Navigate")
    nav_choice = st.radio("Navigate", ["Dashboard", "Leads Table"], index=0)

    st.markdown("---")
    st.markdown("### Date range")
    main_range = st.date_input("Lead dates", value=_range_value(current.date_range, today), key="main_range")
    full_day_mode = st.checkbox("Full day stats", value=current.full_day_mode, help="Off compares every day only up to the current time.")

    st.markdown("---")
    with st.expander("Attendance", expanded=False):
        agents = sorted({a for a in state.store.all.get(AGENT_COL, pd.Series(dtype=str)).dropna().astype(str) if a})
        if not agents:
            st.caption("No SPOCs in the current data.")
        else:
            chosen_agent = st.selectbox("SPOC", agents, key="att_agent")
            status_now = state.preferences.status_of(chosen_agent)
            centre_now = state.preferences.centre_of(chosen_agent)
            new_status = st.radio("Status", STATUSES, index=STATUSES.index(status_now), horizontal=True, key=f"att_status_{chosen_agent}")
            new_centre = st.selectbox("Centre", CENTRES, index=CENTRES.index(centre_now), key=f"att_centre_{chosen_agent}")
            if new_status != status_now:
                state.preferences.set_attendance(chosen_agent, new_status)
            if new_centre != centre_now:
                state.preferences.set_centre(chosen_agent, new_centre)
            roster = pd.DataFrame(state.preferences.attendance_roster(agents))
            st.dataframe(roster.rename(columns=SUMMARY_COLUMNS), hide_index=True, use_container_width=True)

    if state.store.loaded_at is not None:
        st.caption(f"Last updated {state.store.loaded_at:%d/%m/%Y %H:%M:%S}")

raw: Dict[str, Any] = {"date_range": _date_pair(main_range), "full_day_mode": full_day_mode}


def render_dashboard_page():
    with st.expander("Options", expanded=False):
        c1, c2, c3 = st.columns(3)
        with c1:
            stats_range = st.date_input("Lead stats range", value=_range_value(current.stats_range, today), key="stats_range")
            day_wise_range = st.date_input("Day-wise range", value=_range_value(current.day_wise_range, today), key="day_wise_range")
        with c2:
            interval_date = st.date_input("Interval date", value=current.interval_date or today, key="interval_date")
            interval_minutes = st.radio("Interval", [30, 60], index=0 if current.interval_minutes == 30 else 1, horizontal=True, format_func=lambda m: f"{m} min")
        with c3:
            agent_search = st.text_input("Search SPOC", value=current.agent_search)
            dates = [""] + state.store.filtered.get("ts", pd.Series(dtype="datetime64[ns]")).dropna().dt.date.drop_duplicates().sort_values().astype(str).tolist()
            agent_date = st.selectbox("SPOC summary date", dates, format_func=lambda d: d or "All dates")
            ftd_search = st.text_input("Search FTD SPOC", value=current.ftd_search)

    raw.update(
        {
            "stats_range": _date_pair(stats_range),
            "day_wise_range": _date_pair(day_wise_range),
            "interval_date": interval_date.isoformat(),
            "interval_minutes": interval_minutes,
            "agent_search": agent_search,
            "agent_date": agent_date,
            "ftd_search": ftd_search,
        }
    )
    filters = apply_filters(state, raw)
    model = recompute(state)
    overview, analytics, agents_model = model["overview"], model["analytics"], model["agents"]

    render_page_header(
        "Dashboard",
        "Home / Dashboard",
        format_filter_summary(filters.date_range, filters.full_day_mode, online),
        export_df=_rows_frame(agents_model["agent_summary"]["rows"], SUMMARY_COLUMNS),
        export_name="spoc_summary.csv",
    )

    kpis = overview["kpis"]
    with card("Headline"):
        cols = st.columns(4)
        cols[0].metric("Total Leads", f"{kpis['total_leads']:,}")
        cols[1].metric("Unique SPOCs", f"{kpis['unique_agents']:,}")
        cols[2].metric("Today's Leads", f"{kpis['today_leads']:,}")
        cols[3].metric("SPOCs Present", f"{kpis['present_agents']:,}")

    stats = analytics["lead_stats"]
    with card("Lead Stats", actions="Full day" if stats["full_day_mode"] else "Until now"):
        cols = st.columns(4)
        best_day = stats["best_day"]["day"] or "-"
        lowest_day = stats["lowest_day"]["day"] or "-"
        cols[0].metric("Best Day", stats["best_day"]["count"], help=f"Day: {best_day}")
        cols[1].metric("Yesterday", stats["yesterday"])
        cols[2].metric("Lowest Day", stats["lowest_day"]["count"], help=f"Day: {lowest_day}")
        cols[3].metric("Today", stats["today"])
        st.markdown(
            "vs best day: " + _comparison_html(stats["best_comparison"], stats["best_difference"])
            + " &nbsp; | &nbsp; vs yesterday: " + _comparison_html(stats["yesterday_comparison"], stats["yesterday_difference"]),
            unsafe_allow_html=True,
        )

    charts = overview["charts"]
    if not charts:
        st.info("No leads in the selected date range.")
    else:
        chart_cols = st.columns(2)
        with chart_cols[0]:
            with card("Leads by Date"):
                st.vega_lite_chart(charts["leads_by_date"], use_container_width=True)
        with chart_cols[1]:
            with card("Leads by Transaction Mode"):
                st.vega_lite_chart(charts["leads_by_mode"], use_container_width=True)
        chart_cols = st.columns(2)
        with chart_cols[0]:
            with card("Leads by Source"):
                st.vega_lite_chart(charts["leads_by_campaign"], use_container_width=True)
        with chart_cols[1]:
            with card("Leads by SPOC"):
                st.vega_lite_chart(charts["leads_by_agent"], use_container_width=True)

    trend_cols = st.columns(2)
    with trend_cols[0]:
        with card("Day-wise Leads"):
            if "day_wise" in analytics["charts"]:
                st.vega_lite_chart(analytics["charts"]["day_wise"], use_container_width=True)
            else:
                st.info("No leads in the day-wise range.")
    with trend_cols[1]:
        with card(f"Leads by Interval ({analytics['intervals']['date']})"):
            st.vega_lite_chart(analytics["charts"]["intervals"], use_container_width=True)

    summary_cols = st.columns(2)
    with summary_cols[0]:
        with card("SPOC Summary", actions=f"Total: {agents_model['agent_summary']['total']}"):
            st.dataframe(_rows_frame(agents_model["agent_summary"]["rows"], SUMMARY_COLUMNS), hide_index=True, use_container_width=True)
    with summary_cols[1]:
        with card("FTD Summary", actions=f"Total: {agents_model['ftd_summary']['total']}"):
            st.dataframe(_rows_frame(agents_model["ftd_summary"]["rows"], SUMMARY_COLUMNS), hide_index=True, use_container_width=True)

    top_cols = st.columns(3)
    with top_cols[0]:
        with card("Top SPOCs (Month to Date)"):
            st.dataframe(_rows_frame(agents_model["top_mtd"]["rows"], SUMMARY_COLUMNS), hide_index=True, use_container_width=True)
    with top_cols[1]:
        with card("Top SPOCs (Today)"):
            st.dataframe(_rows_frame(agents_model["top_today"]["rows"], SUMMARY_COLUMNS), hide_index=True, use_container_width=True)
    with top_cols[2]:
        zero = agents_model["zero_leads"]
        with card("Zero Leads Today", actions=f"{zero['count']} SPOCs"):
            if zero["count"] == 0:
                st.success("Every present SPOC has a lead today.")
            else:
                st.dataframe(_rows_frame(zero["rows"], SUMMARY_COLUMNS), hide_index=True, use_container_width=True)

    with card("Source Summary", actions=f"Total: {agents_model['campaign_summary']['total']}"):
        st.dataframe(_rows_frame(agents_model["campaign_summary"]["rows"], SUMMARY_COLUMNS), hide_index=True, use_container_width=True)


def render_table_page():
    filtered = state.store.filtered
    with card("Filters"):
        c1, c2, c3, c4, c5 = st.columns([3, 2, 2, 2, 2])
        search_term = c1.text_input("Search", value=current.table.search_term)
        campaigns = [""] + sorted({v for v in filtered.get("source_of_come", pd.Series(dtype=str)).dropna().astype(str) if v})
        agents = [""] + sorted({v for v in filtered.get(AGENT_COL, pd.Series(dtype=str)).dropna().astype(str) if v})
        modes = [""] + sorted({v for v in filtered.get("transaction_mode", pd.Series(dtype=str)).dropna().astype(str) if v})
        campaign = c2.selectbox("Source", campaigns, format_func=lambda v: v or "All")
        agent = c3.selectbox("SPOC", agents, format_func=lambda v: v or "All")
        payment_mode = c4.selectbox("Transaction Mode", modes, format_func=lambda v: v or "All")
        date_equals = c5.date_input("Date", value=None)

        s1, s2 = st.columns(2)
        sort_labels = {"timestamp": "Timestamp", **{k: v for k, v in DISPLAY_NAMES.items() if k != "timestamp"}}
        sort_key = s1.selectbox("Sort by", list(sort_labels), index=list(sort_labels).index(state.table_sort.key) if state.table_sort.key in sort_labels else 0, format_func=sort_labels.get)
        order = s2.radio("Order", ["desc", "asc"], index=0 if state.table_sort.order == "desc" else 1, horizontal=True, format_func=lambda o: "Descending" if o == "desc" else "Ascending")

    raw["table"] = {
        "search_term": search_term,
        "campaign": campaign,
        "agent": agent,
        "payment_mode": payment_mode,
        "date_equals": date_equals.isoformat() if date_equals else None,
    }
    filters = apply_filters(state, raw)
    set_table_sort(state, sort_key, order)
    table = recompute(state)["table"]
    rows = _rows_frame(table["rows"], DISPLAY_NAMES)

    render_page_header(
        "Leads Table",
        "Home / Leads Table",
        format_filter_summary(filters.date_range, filters.full_day_mode, online),
        export_df=rows,
        export_name="leads.csv",
    )
    with card("Leads", actions=f"{table['count']} leads"):
        if rows.empty:
            st.info("No leads match the current filters.")
        else:
            st.dataframe(rows, hide_index=True, use_container_width=True)

    with card("Copy Lead Details"):
        ids = [r["unique_id"] for r in table["rows"] if r.get("unique_id")]
        if not ids:
            st.caption("No leads with a Unique ID.")
        else:
            chosen = st.selectbox("Unique ID", ids)
            record = find_lead(state.store.all, chosen)
            if record is not None:
                st.code(format_lead_copy_text(record), language=None)


if nav_choice == "Dashboard":
    render_dashboard_page()
else:
    render_table_page()
