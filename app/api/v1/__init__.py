"""API v1 routes."""

from fastapi import APIRouter

from app.api.v1 import access_requests, auth, health

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(access_requests.router, prefix="/access-requests", tags=["access-requests"])
