from fastapi import APIRouter

from app.api.v1.gamification import router as gamification_router
from app.api.v1.progress import router as progress_router

api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(gamification_router)
api_v1_router.include_router(progress_router)
