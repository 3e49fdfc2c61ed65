from pathlib import Path

import pytest

from conftest import FEED_TEXT

streamlit_testing = pytest.importorskip("streamlit.testing.v1")

APP_PATH = str(Path(__file__).resolve().parents[1] / "app.py")


def test_app_without_source_asks_for_configuration(monkeypatch, tmp_path):
    monkeypatch.delenv("LEADS_DATA_URL", raising=False)
    monkeypatch.setenv("LEADS_PREFS_PATH", str(tmp_path / "prefs.json"))

    at = streamlit_testing.AppTest.from_file(APP_PATH, default_timeout=30)
    at.run()

    assert not at.exception
    assert any("No data source configured" in info.value for info in at.info)


def test_app_renders_dashboard_from_local_feed(monkeypatch, tmp_path):
    feed = tmp_path / "leads.csv"
    feed.write_text(FEED_TEXT, encoding="utf-8")
    monkeypatch.setenv("LEADS_DATA_URL", str(feed))
    monkeypatch.setenv("LEADS_PREFS_PATH", str(tmp_path / "prefs.json"))

    at = streamlit_testing.AppTest.from_file(APP_PATH, default_timeout=30)
    at.run()

    assert not at.exception
    assert not at.error
    assert [m.label for m in at.metric][:4] == ["Total Leads", "Unique SPOCs", "Today's Leads", "SPOCs Present"]


def test_sessions_share_one_connectivity_monitor(monkeypatch, tmp_path):
    import streamlit as st

    monkeypatch.delenv("LEADS_DATA_URL", raising=False)
    monkeypatch.delenv("LEADS_CONNECTIVITY_URL", raising=False)
    monkeypatch.setenv("LEADS_PREFS_PATH", str(tmp_path / "prefs.json"))
    st.cache_resource.clear()

    first = streamlit_testing.AppTest.from_file(APP_PATH, default_timeout=30)
    second = streamlit_testing.AppTest.from_file(APP_PATH, default_timeout=30)
    first.run()
    second.run()
    first.run()

    monitor = first.session_state["connectivity"]
    try:
        assert not first.exception and not second.exception
        assert second.session_state["connectivity"] is monitor
        assert monitor.running
    finally:
        monitor.stop(timeout=2.0)
        st.cache_resource.clear()
