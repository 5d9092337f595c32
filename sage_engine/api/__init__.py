"""API router for v1 endpoints."""

from fastapi import APIRouter

from sage_engine.api import chat

router = APIRouter()

# Include chat streaming and session routes
router.include_router(chat.router, tags=["chat"])
