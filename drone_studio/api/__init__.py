"""FastAPI router aggregation."""

from fastapi import APIRouter

from drone_studio.api.chats import router as chats_router
from drone_studio.api.reference import router as reference_router

api_router = APIRouter(prefix="/api")

api_router.include_router(chats_router, prefix="/chats", tags=["chats"])
api_router.include_router(reference_router, tags=["reference"])
