"""API v1 router."""
from fastapi import APIRouter
from app.api.v1 import chats, courses, documents, health

router = APIRouter(prefix="/v1")

router.include_router(courses.router)
router.include_router(documents.router)
router.include_router(chats.router)
router.include_router(health.router)
