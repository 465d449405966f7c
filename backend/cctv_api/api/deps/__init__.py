"""Request Dependencies — authentication and token guards injected with Depends()."""
