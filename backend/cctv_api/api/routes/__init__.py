"""Route Modules — one file per resource.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - Routes validate, authorize and shape responses; transactional rules live in services/

Design Decisions:
    - Explicit registration in main.py over auto-discovery
"""
