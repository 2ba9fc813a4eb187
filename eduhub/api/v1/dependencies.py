import logging
import re
from typing import Callable, Generator, Iterable, Optional
from urllib.parse import unquote

from fastapi import Depends, HTTPException, Request, WebSocket, status
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from eduhub.core import security
from eduhub.db.session import database
from eduhub.models.user.user_model import User, UserRole

log = logging.getLogger(__name__)

_SCHEME_PREFIX = re.compile(r"^(?:bearer|token)[\s,:]+", flags=re.IGNORECASE)


def get_db() -> Generator[Session, None, None]:
    """One session per request; FastAPI caches it for every dependency that asks."""
    db = database.session()
    try:
        yield db
    finally:
        db.close()


def _normalize_token_value(raw_token: Optional[str]) -> Optional[str]:
    """Strip quotes, percent-encoding and a ``Bearer``/``Token`` prefix."""
    if raw_token is None:
        return None
    token = unquote(raw_token.strip().strip("\"'")).strip()
    token = _SCHEME_PREFIX.sub("", token, count=1).strip()
    return token or None


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _decode_user_from_token(token: Optional[str], db: Session) -> User:
    token = _normalize_token_value(token)
    if not token:
        log.warning("Authentication failed: no token supplied")
        raise _credentials_error()

    try:
        payload = jwt.decode(token, security.SECRET_KEY, algorithms=[security.ALGORITHM])
        user_id = int(payload["sub"])
    except ExpiredSignatureError:
        log.warning("Authentication failed: token expired")
        raise _credentials_error("Token expired")
    except (JWTError, KeyError, ValueError, TypeError):
        log.warning("Authentication failed: malformed token")
        raise _credentials_error()

    user = db.get(User, user_id)
    if user is None:
        log.warning("Authentication failed: user %s not found", user_id)
        raise _credentials_error()
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user


def _token_candidates(connection: Request | WebSocket) -> list[Optional[str]]:
    """Authorization header, cookie, X-Access-Token header, then query params."""
    return [
        connection.headers.get("Authorization"),
        connection.cookies.get("access_token"),
        connection.headers.get("X-Access-Token"),
        connection.query_params.get("access_token"),
        connection.query_params.get("token"),
    ]


def _websocket_protocol_candidates(websocket: WebSocket) -> list[str]:
    # Browsers can only pass credentials to a socket through subprotocols.
    header = websocket.headers.get("sec-websocket-protocol") or ""
    protocols = [part.strip() for part in header.split(",") if part.strip()]
    if len(protocols) >= 2 and protocols[0].lower().rstrip(":") in {"bearer", "token"}:
        return [" ".join(protocols[:2]), *protocols]
    return protocols


def _authenticate(candidates: Iterable[Optional[str]], db: Session) -> User:
    """Return the user of the first valid token; a 403 stops the search."""
    last_error: HTTPException | None = None
    for candidate in candidates:
        if not _normalize_token_value(candidate):
            continue
        try:
            return _decode_user_from_token(candidate, db)
        except HTTPException as exc:
            if exc.status_code != status.HTTP_401_UNAUTHORIZED:
                raise
            last_error = exc
    raise last_error or _credentials_error()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    return _authenticate(_token_candidates(request), db)


def get_current_user_from_websocket(websocket: WebSocket, db: Session) -> User:
    candidates = _token_candidates(websocket) + _websocket_protocol_candidates(websocket)
    return _authenticate(candidates, db)


def require_roles(*roles: UserRole) -> Callable[..., User]:
    """Dependency factory rejecting callers whose role is not in *roles*."""

    allowed = set(roles)

    def _checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            log.info(
                "User %s (%s) denied: requires %s",
                current_user.id,
                current_user.role.value,
                ", ".join(sorted(r.value for r in allowed)),
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_user

    return _checker
