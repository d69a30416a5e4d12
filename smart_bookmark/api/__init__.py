"""API Layer — FastAPI routes, gate middleware, and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - Every request passes the session gate before any route logic

Design Decisions:
    - Thin routes delegate to services and infrastructure
"""
