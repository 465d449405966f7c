"""Core — pure functions and domain types (no IO, no framework imports).

Invariants:
    - Nothing here touches the database, the filesystem or the network
    - Shell modules (routes, services) orchestrate IO around these functions
"""
