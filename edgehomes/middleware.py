import logging
from typing import Mapping, Optional
from urllib.parse import quote

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from . import urls
from .auth import decode_session
from .constants import ADMIN_COOKIE_NAME, USER_COOKIE_NAME

logger = logging.getLogger("edgehomes.web")


def _is_public_route(path: str) -> bool:
    return any(path == route or path.startswith(route + "/") for route in urls.PUBLIC_ROUTES)


def _starts_with_segment(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def resolve_guard_redirect(
        path: str,
        query: str,
        cookies: Mapping[str, str],
        now: Optional[float] = None,
) -> Optional[str]:
    """
    Decides whether a request may reach its page.

    Returns the URL to redirect to, or None to let the request through.
    """
    is_admin_route = _starts_with_segment(path, urls.ADMIN_PREFIX)
    is_dashboard_route = _starts_with_segment(path, urls.DASHBOARD_PREFIX)

    if not (is_admin_route or is_dashboard_route):
        return None

    if _is_public_route(path) or "sign" in path:
        return None

    destination = f"{path}?{query}" if query else path
    sign_in = urls.Admin.SIGN_IN if is_admin_route else urls.User.SIGN_IN
    sign_in_redirect = f"{sign_in}?redirect={quote(destination, safe='')}"

    cookie_name = ADMIN_COOKIE_NAME if is_admin_route else USER_COOKIE_NAME
    token = cookies.get(cookie_name)
    if not token:
        return sign_in_redirect

    claims = decode_session(token, now=now)
    if claims is None:
        return sign_in_redirect

    if is_admin_route and not claims.isAdmin:
        # Signed in, just not allowed here
        return urls.HOME

    return None


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """Redirects anonymous or unauthorised visitors away from /admin and /dashboard."""

    async def dispatch(self, request: Request, call_next):
        target = resolve_guard_redirect(request.url.path, request.url.query, request.cookies)
        if target is not None:
            logger.info(f"Route guard redirecting {request.url.path} -> {target.split('?')[0]}")
            return RedirectResponse(url=target, status_code=307)
        return await call_next(request)
