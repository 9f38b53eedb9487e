"""Business logic layer for files app.

This package contains the file registry operations other apps rely on:
- Resolving files by id
- Listing processed derivatives of an original
- Listing files of a storage

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
