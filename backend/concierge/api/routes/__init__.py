"""API route registrations."""
from fastapi import APIRouter

from concierge.api.routes import analysis, ask, debug, esthetics, geo


api_router = APIRouter()
api_router.include_router(debug.router)
api_router.include_router(geo.router)
api_router.include_router(analysis.router)
api_router.include_router(ask.router)
api_router.include_router(esthetics.router)

__all__ = ["api_router"]
