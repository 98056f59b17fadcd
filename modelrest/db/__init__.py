"""DB Layer — SQLAlchemy model introspection.

Invariants:
    - Read-only: nothing here mutates mappers or metadata
"""
