"""
Stratus Backend: Application Package Initializer
=================================================

What: Marks the `stratus` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, session guard
    ├─────────────────────────────────────┤
    │     Services (Business Logic)       │  ← Auth flows, weather proxy, history
    ├─────────────────────────────────────┤
    │   Security (Credential primitives)  │  ← bcrypt, tokens, validators, JWT
    ├─────────────────────────────────────┤
    │  Repositories, Models & Schemas     │  ← Storage collaborator + ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes delegate to services. Auth and profile services reach user rows
    only through the repository interface, so they can be tested against
    an in-memory fake.
"""

__version__ = "1.0.0"
