"""Core Layer — pure CRUD logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from api/, infrastructure/, or schemas/
    - Everything except the before_query hook call is pure and deterministic

Design Decisions:
    - Query building and error mapping separated from the FastAPI/SQLAlchemy
      shell so they can be tested without a server or database
"""
