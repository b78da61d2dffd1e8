"""Core (UI-agnostic) dashboard logic.

This package contains:
- data loading (CSV -> pandas) behind a read-only data handle
- filter predicates and selection normalization
- the aggregation engine (grouped statistics, sliding-window returns)
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
