from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass(frozen=True)
class Settings:
    data_url: str = ""
    prefs_path: str = ".leads_prefs.json"
    fetch_timeout: float = 30.0
    check_interval: float = 30.0
    connectivity_url: str = ""
    top_limit: int = 10
    interval_minutes: int = 30
    log_level: str = "INFO"


def _as_float(value: Optional[str], default: float) -> float:
    if value is None or not str(value).strip():
        return default
    try:
        out = float(value)
    except Exception:
        return default
    return out if out > 0 else default


def _as_int(value: Optional[str], default: int) -> int:
    if value is None or not str(value).strip():
        return default
    try:
        out = int(value)
    except Exception:
        return default
    return out if out > 0 else default


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``LEADS_*`` environment variables."""
    env = os.environ if environ is None else environ

    data_url = (env.get("LEADS_DATA_URL") or "").strip()
    interval_minutes = _as_int(env.get("LEADS_INTERVAL_MINUTES"), 30)
    if interval_minutes not in (30, 60):
        interval_minutes = 30

    return Settings(
        data_url=data_url,
        prefs_path=(env.get("LEADS_PREFS_PATH") or "").strip() or ".leads_prefs.json",
        fetch_timeout=_as_float(env.get("LEADS_FETCH_TIMEOUT"), 30.0),
        check_interval=_as_float(env.get("LEADS_CHECK_INTERVAL"), 30.0),
        connectivity_url=(env.get("LEADS_CONNECTIVITY_URL") or "").strip() or data_url,
        top_limit=max(1, min(100, _as_int(env.get("LEADS_TOP_LIMIT"), 10))),
        interval_minutes=interval_minutes,
        log_level=(env.get("LEADS_LOG_LEVEL") or "INFO").strip().upper() or "INFO",
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
