"""FastAPI REST API package."""
