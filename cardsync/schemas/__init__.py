"""Pydantic Schemas — wire models exchanged with the persistence service.

Invariants:
    - Schemas validate at system boundary (service responses, durable store payloads)

Design Decisions:
    - Separate from models: schemas are wire contracts, models are local persistence
"""
