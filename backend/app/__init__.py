"""
Wayfarer Backend — Application Package Initializer
===================================================

What: Marks the `app` directory as a Python package.
Why:  Enables module imports like `from app.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    This backend follows a layered architecture wrapped in a request pipeline:

    ┌─────────────────────────────────────┐
    │     Middleware Pipeline (ordered)   │  ← security, rate limit, parsing, sanitization
    ├─────────────────────────────────────┤
    │      Routes (API + View Layer)      │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services + Tour Hooks (Logic)     │  ← validation, query scoping, joins
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Failures from any layer flow into a single error translation layer
    (app/error_handlers.py), which decides the response shape.
"""

__version__ = "1.0.0"
