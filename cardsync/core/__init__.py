"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic (time and randomness are passed in)

Design Decisions:
    - Functional core separated from imperative shell: classifier, scope slugs,
      cache validity and retry policy are testable without fakes
"""
