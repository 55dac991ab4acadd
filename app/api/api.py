"""
API Router Module - Aggregates all endpoint routers
"""
from fastapi import APIRouter

from app.api.endpoints import cinemas, health, movies, users

# Create the main API router
api_router = APIRouter()

# Include all endpoint routers with appropriate prefixes and tags
api_router.include_router(health.router, prefix="/health", tags=["Health"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(cinemas.router, prefix="/cinemas", tags=["Cinemas"])
api_router.include_router(movies.router, prefix="/admin/movies", tags=["Movies"])
