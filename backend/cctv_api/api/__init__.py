"""API Layer — routers, request dependencies, error handlers and response shaping."""
