"""
KeepWise Backend — Application Package Initializer
===================================================

What: The `keepwise` package: a notes API for text captured from web pages,
      plus the client-side capture flow that feeds it.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Token verification)     │  ← Identity resolution
    ├─────────────────────────────────────┤
    │     Stores (NoteStore strategy)     │  ← SQL table or Firestore collection
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘

    The `keepwise.client` package sits outside the server stack: it talks to
    the routes over HTTP exactly like the browser extension does.
"""

__version__ = "1.0.0"
