"""
Trail API Backend — Application Package Initializer
===================================================

What: Marks the `trailapi` directory as a Python package.
Why:  Enables module imports like `from trailapi.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    This backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Services (CRUD, links, pagination) │  ← Ownership, validation, edges
    ├─────────────────────────────────────┤
    │  Resource registry & Schemas (Data) │  ← Descriptors + Pydantic
    ├─────────────────────────────────────┤
    │     Entity store (Persistence)      │  ← SQL documents or in-memory
    └─────────────────────────────────────┘

    Routes never talk to the store directly. Every store and identity client
    is handed to the services through FastAPI dependencies, so tests swap in
    an in-memory store and a static token table.
"""

__version__ = "1.0.0"
