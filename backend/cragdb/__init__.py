"""
CragDB Backend — Application Package Initializer
==================================================

What: The `cragdb` package: GraphQL API for a crowd-sourced climbing route database.
Who:  Imported by uvicorn (`cragdb.main:app`), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │   GraphQL (/graphql) + REST routes  │  ← transport, RBAC, error shape
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← slugs, positions, cascades,
    │                                     │    queries, transactions
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← async sessions, DB trigger
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
