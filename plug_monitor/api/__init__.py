"""HTTP and WebSocket surface of the power monitor (FastAPI)."""
