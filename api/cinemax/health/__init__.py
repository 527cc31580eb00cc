"""Health check endpoints."""

from cinemax.health.router import router


__all__ = ["router"]
