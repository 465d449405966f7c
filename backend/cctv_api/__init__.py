"""CCTV Analytics Package — REST backend for cameras, analytics, servers and face data.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
"""
