"""Services Layer — entity store, cache, sync engine, resolution and URL migration.

Invariants:
    - Services receive collaborators through their constructors (no module-level singletons)
    - Every service is instantiable in isolation for tests

Design Decisions:
    - One service per file for locality; CardSyncClient in client.py is the only wiring point
"""
