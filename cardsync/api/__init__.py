"""API Layer — FastAPI share-link gateway and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All endpoints return structured JSON responses

Design Decisions:
    - Thin routes delegate to the Resolution Pipeline (functional core, imperative shell)
"""
