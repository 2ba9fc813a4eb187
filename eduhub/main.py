import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from eduhub import __version__
from eduhub.api.v1.api import api_router
from eduhub.core.config import settings
from eduhub.core.errors import ServiceError
from eduhub.core.security import get_password_hash
from eduhub.db.base import Base
from eduhub.db.session import database
from eduhub.models.user.user_model import User, UserRole
from eduhub.schemas.common import ErrorEnvelope

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=__version__,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
)


def _sanitize_origin(origin: str | None) -> str | None:
    if not origin:
        return None
    value = origin.strip()
    if not value:
        return None
    if not value.startswith("http"):
        value = f"https://{value}"
    return value.rstrip("/")


cors_origins = sorted({o for o in (_sanitize_origin(o) for o in settings.BACKEND_CORS_ORIGINS) if o})
logger.info("CORS origins: %s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type", "X-Access-Token"],
)


# --- Error envelopes ---
_HTTP_ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_409_CONFLICT: "conflict",
}


def _error_response(status_code: int, message: str, code: str, **extra) -> JSONResponse:
    body = ErrorEnvelope(message=message, code=code).model_dump()
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.message, exc.code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    response = _error_response(exc.status_code, str(exc.detail), code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return _error_response(
        422,
        "Request validation failed",
        "validation_error",
        errors=errors,
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "internal_error")


app.include_router(api_router, prefix=settings.API_V1_PREFIX)


def ensure_first_admin() -> None:
    """Create the configured bootstrap admin if it is missing."""
    email = (settings.FIRST_ADMIN_EMAIL or "").strip().lower()
    if not email or not settings.FIRST_ADMIN_PASSWORD:
        return

    with database.session() as session:
        if session.query(User).filter(User.email == email).first() is not None:
            logger.info("Bootstrap admin '%s' already present.", email)
            return

        session.add(
            User(
                email=email,
                first_name="Admin",
                last_name="User",
                hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
                role=UserRole.ADMIN,
                is_active=True,
            )
        )
        session.commit()
        logger.info("Bootstrap admin '%s' created.", email)


@app.on_event("startup")
async def startup():
    database.connect()
    logger.info("Creating database tables if needed...")
    async with database.async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready (%s).", database.dialect)
    ensure_first_admin()


@app.on_event("shutdown")
async def shutdown():
    database.disconnect()


@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}", "version": __version__}
