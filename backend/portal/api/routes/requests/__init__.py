"""
Request Routes Module

Client request API endpoints organized by functionality:

- crud.py: Create, list, get, update, delete requests
- workflow.py: Generate/modify workflow, refresh suggestions, assign employees
- review.py: Department approve/reject, final approve/reject, audit trail

All routes are combined into a single router for inclusion in the API.
"""

from fastapi import APIRouter

from .crud import router as crud_router
from .workflow import router as workflow_router
from .review import router as review_router

router = APIRouter()
router.include_router(crud_router)
router.include_router(workflow_router)
router.include_router(review_router)

__all__ = ["router"]
