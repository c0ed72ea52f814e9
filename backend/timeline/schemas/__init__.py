"""Pydantic Schemas — response contracts for API endpoints.

Invariants:
    - Schemas shape data at the system boundary only
    - Body/asset validation stays in core/ (single source of truth)

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
