"""Services Layer — asset lifecycle, mutation coordination, live subscriptions.

Invariants:
    - Services talk to stores only through core.repository_protocols
    - Every cross-store step is awaited in sequence (no gather)

Design Decisions:
    - One service per collaborator boundary for locality
"""
