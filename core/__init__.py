"""Core (UI-agnostic) dashboard logic.

This package contains:
- monthly records, fixture data and file loading (pandas)
- fetch collaborators and the metrics store
- display formatting and threshold classification
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
