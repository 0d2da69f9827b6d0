"""API Routes module"""
from fastapi import APIRouter

from .requests import router as requests_router
from .projects import router as projects_router, tasks_router

# Main API router
api_router = APIRouter()

# Include all route modules
api_router.include_router(requests_router, prefix="/requests", tags=["Requests"])
api_router.include_router(projects_router, prefix="/projects", tags=["Projects"])
api_router.include_router(tasks_router, prefix="/tasks", tags=["Tasks"])

__all__ = ["api_router"]
