"""Core (UI-agnostic) productivity dashboard logic.

This package contains:
- sheet loading (CSV export -> rows -> pandas)
- filter selection and the filter engine
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
