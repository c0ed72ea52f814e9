"""Infrastructure Layer — store adapters and cross-cutting concerns.

Invariants:
    - Adapters implement core.repository_protocols structurally
    - All backend exceptions mapped to core.errors before leaving this layer

Design Decisions:
    - Adapters over raw clients: the core never sees SQLAlchemy or file IO
"""
