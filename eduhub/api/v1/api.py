from fastapi import APIRouter

from .endpoints import (
    auth_router,
    content_router,
    health_router,
    notification_router,
    notification_ws,
    subject_router,
)

api_router = APIRouter()

api_router.include_router(health_router.router, tags=["Health"])
api_router.include_router(auth_router.router, prefix="/auth", tags=["Auth"])
api_router.include_router(notification_router.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(notification_ws.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(content_router.router, tags=["Content"])
api_router.include_router(subject_router.router, prefix="/subjects", tags=["Subjects"])
