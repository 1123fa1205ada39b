"""API router aggregating all route modules."""

from fastapi import APIRouter

from api.routes.auth import router as auth_router
from api.routes.images import router as images_router
from api.routes.profiles import router as profiles_router

router = APIRouter()

router.include_router(auth_router)
router.include_router(profiles_router)
router.include_router(images_router)
