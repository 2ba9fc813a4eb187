from pydantic_settings import BaseSettings
from typing import List, Optional
from pydantic import ValidationError, field_validator
import sys


class Settings(BaseSettings):
    PROJECT_NAME: str = "EduHub API"
    API_V1_PREFIX: str = "/api/v1"

    DATABASE_URL: str
    ENVIRONMENT: str = "development"

    # Secret used to sign JWTs.
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    LOG_LEVEL: str = "INFO"

    # Performance instrumentation
    SQLALCHEMY_ECHO: bool = False
    SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS: int = 300
    DATABASE_CONNECTION_MAX_RETRIES: int = 3
    DATABASE_CONNECTION_RETRY_BACKOFF_SECONDS: float = 1.0

    # Pagination & retention
    NOTIFICATION_PAGE_SIZE: int = 20
    CONTENT_PAGE_SIZE: int = 10
    NOTIFICATION_RETENTION_DAYS: int = 30

    # Seeded on startup when both are set; self-registration only creates students.
    FIRST_ADMIN_EMAIL: Optional[str] = None
    FIRST_ADMIN_PASSWORD: Optional[str] = None

    class Config:
        env_file = ".env"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        """Ensure Postgres URLs always use the asyncpg driver.

        Managed Postgres providers still hand out ``postgres://`` URLs, an alias
        SQLAlchemy no longer ships. Those and the ``postgresql://`` / psycopg
        variants are upgraded to ``postgresql+asyncpg://`` so the async engine
        boots; SQLite and other backends are left untouched.
        """

        if not isinstance(value, str):
            return value

        if "+asyncpg" in value:
            return value

        replacements = {
            "postgres://": "postgresql+asyncpg://",
            "postgresql://": "postgresql+asyncpg://",
            "postgresql+psycopg2://": "postgresql+asyncpg://",
            "postgresql+psycopg://": "postgresql+asyncpg://",
        }

        for prefix, target in replacements.items():
            if value.startswith(prefix):
                return target + value[len(prefix) :]

        return value

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if not isinstance(value, str):
            return value
        return value.strip().upper() or "INFO"


def _log_settings_validation_error(exc: ValidationError) -> None:
    """Pretty-print missing or invalid environment variables.

    The exception bubbles up during module import, which makes it hard to see
    which variable is responsible, so the structured payload is written to
    stderr before re-raising.
    """

    header = "Configuration error while loading environment variables:"
    print(header, file=sys.stderr)

    try:
        details = exc.errors()
    except Exception:  # pragma: no cover
        details = None

    if details:
        for error in details:
            location = ".".join(str(part) for part in error.get("loc", ()))
            message = error.get("msg", "Unknown validation error")
            type_name = error.get("type")
            hint_parts = [message]
            if type_name:
                hint_parts.append(f"(type={type_name})")
            hint = " ".join(hint_parts)
            print(f"  - {location}: {hint}", file=sys.stderr)
    else:
        print(exc, file=sys.stderr)


try:
    settings = Settings()
except ValidationError as exc:  # pragma: no cover - exercised at runtime
    _log_settings_validation_error(exc)
    raise
