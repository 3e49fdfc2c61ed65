"""Core (UI-agnostic) lead dashboard logic.

This package contains:
- feed loading (CSV text -> pandas) and the record store
- filter normalization and the date/table filter engine
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- agent preferences (attendance, centre, saved date ranges)
"""
