"""
NoteKeeper Backend: Application Package
========================================

What:  Personal note-taking API (accounts, notes with image attachments,
       favorites, templates, export, analytics).
Who:   Imported by uvicorn (`notekeeper.main:app`), Alembic and pytest.

Layering:

    ┌──────────────────────────────────────┐
    │        Routes + Dependencies         │  ← HTTP, bearer token → User
    ├──────────────────────────────────────┤
    │ Services (AuthService, NoteService)  │  ← lifecycle rules
    ├──────────────────┬───────────────────┤
    │ Stores (SQL)     │ Storage gateway   │  ← database / object storage
    └──────────────────┴───────────────────┘

    NoteService is the only component that talks to both the NoteStore and
    the ObjectStorageGateway inside a single operation.
"""

__version__ = "1.0.0"
