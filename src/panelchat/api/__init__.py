"""HTTP gateway -- FastAPI app factory, routes and wire models."""
