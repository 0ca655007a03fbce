"""
Session cookie handling.

The backend issues a signed JWT on sign-in. We keep it in an HTTP-only cookie
(one per role) and read the claims back on every protected request. Claims are
only trusted after the signature has been verified with the key shared with
the backend; a token that fails verification, is malformed or has expired is
treated exactly like a missing one.
"""
import datetime
import logging
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Response
from jose import jwt, JWTError
from pydantic import ValidationError

from . import urls
from .config import settings
from .constants import ADMIN_COOKIE_NAME, USER_COOKIE_NAME
from .enums import Role
from .exceptions import InvalidTokenError, SessionRequiredError
from .schemas import TokenClaims

logger = logging.getLogger("edgehomes.auth")

COOKIE_NAMES = {
    Role.ADMIN: ADMIN_COOKIE_NAME,
    Role.USER: USER_COOKIE_NAME,
}

SIGN_IN_URLS = {
    Role.ADMIN: urls.Admin.SIGN_IN,
    Role.USER: urls.User.SIGN_IN,
}


@dataclass
class AuthSession:
    """A verified session: the decoded claims plus the raw bearer token."""
    claims: TokenClaims
    token: str
    role: Role

    @property
    def bearer(self) -> str:
        return f"Bearer {self.token}"


def _decode(token: str) -> dict:
    return jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        options={"verify_aud": False, "verify_exp": False},
    )


def decode_session(token: Optional[str], now: Optional[float] = None) -> Optional[TokenClaims]:
    """
    Returns the token's claims if it is well formed, correctly signed and not
    expired; None otherwise.
    """
    if not token:
        return None
    try:
        claims = TokenClaims.model_validate(_decode(token))
    except (JWTError, ValidationError, ValueError, TypeError) as e:
        logger.debug(f"Rejected session token: {type(e).__name__}")
        return None

    current = time.time() if now is None else now
    if claims.exp <= current:
        logger.debug(f"Session for {claims.sub} expired at {claims.exp}")
        return None
    return claims


def create_cookie(response: Response, name: str, token: str) -> None:
    """
    Stores the token in an HTTP-only cookie that expires together with the token.
    """
    try:
        payload = _decode(token)
    except JWTError as e:
        raise InvalidTokenError(f"Invalid token: {e}") from e

    exp = payload.get("exp")
    if not exp:
        raise InvalidTokenError("Invalid token: Missing expiration")

    response.set_cookie(
        key=name,
        value=token,
        path="/",
        httponly=True,
        samesite="lax",
        expires=datetime.datetime.fromtimestamp(int(exp), tz=datetime.timezone.utc),
        secure=settings.is_production,
    )


def get_cookie(request: Request, name: str) -> Optional[str]:
    return request.cookies.get(name)


def has_cookie(request: Request, name: str) -> bool:
    return name in request.cookies


def delete_cookie(response: Response, name: str) -> None:
    response.delete_cookie(key=name, path="/", httponly=True, samesite="lax")


def log_out(response: Response, role: Role) -> None:
    delete_cookie(response, COOKIE_NAMES[role])


def get_session(request: Request, name: str) -> Optional[TokenClaims]:
    return decode_session(get_cookie(request, name))


def current_destination(request: Request) -> str:
    destination = request.url.path
    if request.url.query:
        destination = f"{destination}?{request.url.query}"
    return destination


def _require_session(request: Request, role: Role) -> AuthSession:
    name = COOKIE_NAMES[role]
    claims = get_session(request, name)
    if claims is None:
        raise SessionRequiredError(SIGN_IN_URLS[role], current_destination(request))
    return AuthSession(claims=claims, token=get_cookie(request, name), role=role)


async def require_admin_session(request: Request) -> AuthSession:
    """Dependency for admin pages; the route guard normally catches this first."""
    return _require_session(request, Role.ADMIN)


async def require_user_session(request: Request) -> AuthSession:
    return _require_session(request, Role.USER)


async def get_key_by_session_or_ip(request: Request) -> str:
    """
    Rate-limit key: the session subject when either cookie holds a valid token,
    otherwise the client's IP.
    """
    for name in (ADMIN_COOKIE_NAME, USER_COOKIE_NAME):
        if not has_cookie(request, name):
            continue
        claims = get_session(request, name)
        if claims:
            return f"user:{claims.sub}"
    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"
