"""Projects API routes."""

from __future__ import annotations

from fastapi import APIRouter

from .core import router as core_router
from .execution import router as execution_router

router = APIRouter()
router.include_router(core_router, prefix="/projects", tags=["projects"])
router.include_router(execution_router, prefix="/projects", tags=["projects"])

__all__ = ["router"]
