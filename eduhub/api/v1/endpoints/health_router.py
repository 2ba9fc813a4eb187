from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from eduhub.db.session import database

router = APIRouter()


@router.get("/health")
def health():
    """Liveness plus a ``SELECT 1`` against the configured store."""
    if database.health_check():
        return {"success": True, "data": {"status": "ok", "database": True}, "message": None}
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"success": False, "data": {"status": "degraded", "database": False}, "message": "Database unavailable"},
    )
