from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import requests

logger = logging.getLogger(__name__)


def http_probe(url: str, *, timeout: float = 5.0) -> Callable[[], bool]:
    """Probe that reports online when ``url`` answers at all."""

    def probe() -> bool:
        if not url.lower().startswith(("http://", "https://")):
            return True
        try:
            requests.head(url, timeout=timeout, allow_redirects=True)
        except requests.RequestException:
            return False
        return True

    return probe


class ConnectivityMonitor:
    """Re-checks connectivity on a fixed interval, independent of data loads."""

    def __init__(
        self,
        probe: Callable[[], bool],
        *,
        interval: float = 30.0,
        on_change: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self._probe = probe
        self._interval = interval
        self._on_change = on_change
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.online: Optional[bool] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def check(self) -> bool:
        try:
            online = bool(self._probe())
        except Exception:
            logger.exception("Connectivity probe failed")
            online = False
        changed = online != self.online
        self.online = online
        if changed:
            logger.info("Connectivity is now %s", "online" if online else "offline")
            if self._on_change is not None:
                self._on_change(online)
        return online

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            self.check()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self.check()
        self._thread = threading.Thread(target=self._run, name="connectivity-monitor", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
