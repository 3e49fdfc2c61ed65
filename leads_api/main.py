from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import math
from typing import Literal, Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response

from leads.config import configure_logging, load_settings
from leads.connectivity import ConnectivityMonitor, http_probe
from leads.data import DISPLAY_NAMES, FeedError
from leads.filters import AGENT_COL, filter_options, normalize_date_range
from leads.metrics_agents import (
    compute_agent_summary,
    compute_campaign_summary,
    compute_ftd_summary,
    compute_mode_summary,
)
from leads.metrics_table import compute_table, find_lead, format_lead_copy_text
from leads.pipeline import (
    DashboardState,
    apply_filters,
    build_state,
    prepare_context,
    recompute,
    refresh as refresh_records,
    set_table_sort,
)
from leads.sorting import sort_summary
from leads_api.schemas import AttendanceUpdate, CentreUpdate, DashboardRequest, DateRangeModel

logger = logging.getLogger(__name__)

SummaryView = Literal["agents", "ftd", "campaigns", "modes"]
RangeName = Literal["stats", "day_wise"]
ExportPage = Literal["table", "agents", "ftd", "campaigns", "modes"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings()
    configure_logging(settings)
    monitor = ConnectivityMonitor(
        http_probe(settings.connectivity_url, timeout=settings.fetch_timeout),
        interval=settings.check_interval,
    )
    app.state.monitor = monitor
    monitor.start()
    try:
        yield
    finally:
        monitor.stop(timeout=1.0)


app = FastAPI(title="Lead Dashboard API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_dashboard_state(request: Request) -> DashboardState:
    """Process-wide session state, created on first use."""
    state: Optional[DashboardState] = getattr(request.app.state, "dashboard", None)
    if state is None:
        state = build_state(load_settings())
        request.app.state.dashboard = state
    return state


def get_monitor(request: Request) -> Optional[ConnectivityMonitor]:
    return getattr(request.app.state, "monitor", None)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                type(pd.NaT): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _summary_frame(state: DashboardState, view: str) -> pd.DataFrame:
    ctx = prepare_context(state)
    f = state.filters
    centre_of = state.preferences.centre_lookup()
    if view == "agents":
        return compute_agent_summary(
            ctx["filtered_records"], search_term=f.agent_search, date_equals=f.agent_date, centre_of=centre_of
        )
    if view == "ftd":
        return compute_ftd_summary(ctx["filtered_records"], ctx["now"], search_term=f.ftd_search, centre_of=centre_of)
    if view == "campaigns":
        return compute_campaign_summary(ctx["filtered_records"])
    if view == "modes":
        return compute_mode_summary(ctx["filtered_records"])
    raise ValueError(f"Unknown summary view '{view}'")


def _agents(state: DashboardState) -> list[str]:
    records = state.store.all
    if AGENT_COL not in records.columns:
        return []
    return [a for a in records[AGENT_COL].dropna().astype(str).drop_duplicates().tolist() if a]


@app.get("/meta/options")
async def meta_options(state: DashboardState = Depends(get_dashboard_state)):
    try:
        return _json(filter_options(state.store.filtered))
    except Exception as exc:
        logger.exception("meta_options failed")
        return _error(exc)


@app.post("/refresh")
async def refresh(state: DashboardState = Depends(get_dashboard_state)):
    try:
        records = await run_in_threadpool(refresh_records, state)
    except FeedError as exc:
        return _error(exc, status_code=502)
    except ValueError as exc:
        return _error(exc, status_code=400)
    except Exception as exc:
        logger.exception("refresh failed")
        return _error(exc)
    return _json({"rows": int(len(records)), "loaded_at": state.store.loaded_at})


@app.post("/dashboard")
async def dashboard(filters: DashboardRequest, state: DashboardState = Depends(get_dashboard_state)):
    try:
        apply_filters(state, filters.to_raw())
        return _json(recompute(state))
    except Exception as exc:
        logger.exception("dashboard failed")
        return _error(exc)


@app.post("/table")
async def table(
    filters: DashboardRequest,
    sort_key: Optional[str] = Query(default=None),
    order: Optional[Literal["asc", "desc"]] = Query(default=None),
    state: DashboardState = Depends(get_dashboard_state),
):
    try:
        apply_filters(state, filters.to_raw())
        if sort_key:
            set_table_sort(state, sort_key, order)
        ctx = prepare_context(state)
        return _json(compute_table(state.filters, ctx, sort_key=state.table_sort.key, order=state.table_sort.order))
    except Exception as exc:
        logger.exception("table failed")
        return _error(exc)


@app.post("/summary/{view}")
async def summary(
    view: SummaryView,
    filters: DashboardRequest,
    sort_key: str = Query(default="count"),
    order: Literal["asc", "desc"] = Query(default="desc"),
    state: DashboardState = Depends(get_dashboard_state),
):
    try:
        apply_filters(state, filters.to_raw())
        frame = sort_summary(_summary_frame(state, view), sort_key, order, centre_of=state.preferences.centre_lookup())
        total = int(frame["count"].sum()) if not frame.empty else 0
        return _json({"view": view, "rows": frame.to_dict(orient="records"), "total": total})
    except Exception as exc:
        logger.exception("summary failed")
        return _error(exc)


@app.get("/attendance")
async def attendance(state: DashboardState = Depends(get_dashboard_state)):
    try:
        return _json({"agents": state.preferences.attendance_roster(_agents(state))})
    except Exception as exc:
        logger.exception("attendance failed")
        return _error(exc)


@app.put("/attendance/{agent}")
async def update_attendance(agent: str, update: AttendanceUpdate, state: DashboardState = Depends(get_dashboard_state)):
    try:
        state.preferences.set_attendance(agent, update.status)
    except ValueError as exc:
        return _error(exc, status_code=400)
    return _json({"spoc_name": agent, "status": state.preferences.status_of(agent)})


@app.put("/centre/{agent}")
async def update_centre(agent: str, update: CentreUpdate, state: DashboardState = Depends(get_dashboard_state)):
    try:
        state.preferences.set_centre(agent, update.centre)
    except ValueError as exc:
        return _error(exc, status_code=400)
    return _json({"spoc_name": agent, "centre": state.preferences.centre_of(agent)})


@app.get("/date-ranges/{name}")
async def get_date_range(name: RangeName, state: DashboardState = Depends(get_dashboard_state)):
    return _json(state.preferences.load_date_range(name).as_strings())


@app.put("/date-ranges/{name}")
async def put_date_range(name: RangeName, body: DateRangeModel, state: DashboardState = Depends(get_dashboard_state)):
    date_range = normalize_date_range(body.model_dump())
    if not date_range.is_set:
        return JSONResponse(status_code=400, content={"error": "start and end must be valid dates", "type": "ValueError"})
    apply_filters(state, {f"{name}_range": date_range.as_strings()})
    return _json(date_range.as_strings())


@app.get("/connectivity")
async def connectivity(monitor: Optional[ConnectivityMonitor] = Depends(get_monitor)):
    if monitor is None:
        return _json({"online": None, "monitoring": False})
    online = monitor.online
    if online is None:
        online = await run_in_threadpool(monitor.check)
    return _json({"online": online, "monitoring": monitor.running})


@app.post("/export/{page}")
async def export_page(page: ExportPage, filters: DashboardRequest, state: DashboardState = Depends(get_dashboard_state)):
    apply_filters(state, filters.to_raw())
    if page == "table":
        ctx = prepare_context(state)
        payload = compute_table(state.filters, ctx, sort_key=state.table_sort.key, order=state.table_sort.order)
        export_df = pd.DataFrame(payload["rows"], columns=[c["key"] for c in payload["columns"]])
        export_df = export_df.rename(columns=DISPLAY_NAMES)
    else:
        export_df = _summary_frame(state, page)

    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    filename = f"{page}.csv"
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})


@app.get("/copy/{unique_id}")
async def copy_lead(unique_id: str, state: DashboardState = Depends(get_dashboard_state)):
    record = find_lead(state.store.all, unique_id)
    if record is None:
        return JSONResponse(status_code=404, content={"error": f"No lead with Unique ID '{unique_id}'", "type": "KeyError"})
    return _json({"unique_id": unique_id, "text": format_lead_copy_text(record), "record": record})
