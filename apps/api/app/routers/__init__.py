"""API routers."""

from app.routers.agents import router as agents_router
from app.routers.appointments import router as appointments_router
from app.routers.properties import router as properties_router

__all__ = [
    "agents_router",
    "appointments_router",
    "properties_router",
]
