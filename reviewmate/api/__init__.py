"""Public JSON API built with FastAPI."""
