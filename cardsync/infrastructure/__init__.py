"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - Infrastructure implements the Protocols in core/repository_protocols.py
    - All external calls wrapped with timeout/error mapping into core/errors.py

Design Decisions:
    - Thin adapters over raw clients (httpx, SQLAlchemy): retry policy lives in core/retry_policy.py
"""
