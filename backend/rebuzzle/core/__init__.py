"""Core Layer: pure domain logic, no DB, no HTTP.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or models/
    - All functions are pure and deterministic (logging aside)

Design Decisions:
    - Functional core separated from imperative shell (ADR: impureim sandwich)
"""
