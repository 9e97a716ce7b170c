"""API routes."""
from fastapi import APIRouter

from app.api import health, two_factor

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["Health"])
api_router.include_router(two_factor.router, prefix="/auth/two-factor", tags=["Two-Factor Auth"])
