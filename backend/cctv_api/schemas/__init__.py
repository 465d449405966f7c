"""Pydantic Schemas — request validation for API endpoints.

Invariants:
    - Schemas validate at the system boundary (JSON bodies, multipart forms, query strings)
    - Field errors surface as {field, message} with the client-facing (camelCase) name

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
    - Responses are shaped by api/presenters.py as plain dicts, not response models
"""
