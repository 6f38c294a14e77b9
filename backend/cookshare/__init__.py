"""
CookShare Backend — Application Package Initializer
====================================================

What: The `cookshare` package: REST backend for recipe-sharing groups.
Who:  Imported by uvicorn (`cookshare.main:app`), Alembic and pytest.

Architecture Note:
    The backend is layered:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Group / Post services (lifecycle)  │  ← Orchestration, validation
    ├─────────────────────────────────────┤
    │   Authorization engine (pure)       │  ← Membership & visibility rules
    ├─────────────────────────────────────┤
    │  Membership store / User directory  │  ← Async SQLAlchemy persistence
    └─────────────────────────────────────┘

    The authorization engine performs no I/O; it decides over a loaded
    group and a caller id. Services load, decide, then write.
"""

__version__ = "1.0.0"
