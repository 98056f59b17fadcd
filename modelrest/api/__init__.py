"""API Layer — generated FastAPI routers and error handlers.

Invariants:
    - Routers are built by create_controller() and mounted by the host app
    - All endpoints return JSON: envelopes on success, {"errors": [...]} on failure

Design Decisions:
    - Thin route closures delegate to ResourceHandlers (ADR: impureim sandwich)
"""
