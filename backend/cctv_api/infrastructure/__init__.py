"""Infrastructure Layer — database pool, logging, and clients for external services.

Invariants:
    - Infrastructure imports only core/errors from the domain side
    - All external calls wrapped with timeout/retry/error mapping

Design Decisions:
    - Thin adapters over raw clients (httpx, pymilvus) so routes depend on one seam
"""
