"""Infrastructure Layer — database sessions, storage access, and logging.

Invariants:
    - Infrastructure never imports from api/
    - All SQLAlchemy exceptions are translated to core/errors.py types here

Design Decisions:
    - Repository wraps AsyncSession instead of exposing it to handlers
      (ADR: handlers see a find/create/save/destroy surface only)
"""
