"""FastAPI application for tenant feature management."""
