"""Pydantic Schemas — request validation and record serialization.

Invariants:
    - Schemas validate at the system boundary (request bodies, query strings)
    - Generated from the mapper, never hand-maintained per model
"""
