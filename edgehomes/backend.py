import logging
from typing import Any, Iterable, Optional

import httpx
from fastapi import Request

from .cache import ResponseCache, cache_key
from .config import settings
from .enums import RevalidateTag
from .exceptions import BackendError, BackendUnavailableError

logger = logging.getLogger("edgehomes.backend")


def _error_messages(body: Any, fallback: str) -> list[str]:
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, list):
            return [str(m) for m in message if m]
        if message:
            return [str(message)]
    return [fallback]


class BackendClient:
    """
    Thin async client for the EdgeHomes backend API.

    Every call returns the decoded JSON body or raises BackendError. GETs that
    carry revalidation tags are served from the response cache when possible.
    """

    def __init__(self, http: httpx.AsyncClient, cache: Optional[ResponseCache] = None):
        self.http = http
        self.cache = cache

    @staticmethod
    def auth_headers(token: Optional[str]) -> dict:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
            self,
            method: str,
            path: str,
            *,
            token: Optional[str] = None,
            params: Optional[dict] = None,
            json: Any = None,
            data: Optional[dict] = None,
            files: Optional[list] = None,
    ) -> Any:
        clean_params = {k: v for k, v in (params or {}).items() if v not in (None, "")}
        try:
            response = await self.http.request(
                method,
                path,
                params=clean_params or None,
                json=json,
                data=data,
                files=files,
                headers=self.auth_headers(token),
            )
        except httpx.TimeoutException as e:
            logger.error(f"{method} {path} timed out: {e}")
            raise BackendUnavailableError() from e
        except httpx.TransportError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise BackendUnavailableError() from e

        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None

        if response.is_error:
            messages = _error_messages(body, f"Request failed with status {response.status_code}")
            logger.warning(f"{method} {path} -> {response.status_code}: {messages[0]}")
            raise BackendError(messages[0], status_code=response.status_code, messages=messages)

        # Some endpoints answer 200 with an {error, message} envelope
        if isinstance(body, dict) and "error" in body and "message" in body:
            messages = _error_messages(body, "Request failed")
            raise BackendError(messages[0], status_code=response.status_code, messages=messages)

        return body

    async def get(
            self,
            path: str,
            *,
            token: Optional[str] = None,
            params: Optional[dict] = None,
            tags: Iterable[RevalidateTag] = (),
            ttl: Optional[int] = None,
    ) -> Any:
        tags = tuple(tags)
        key = None
        if tags and self.cache is not None:
            key = cache_key("GET", path, params, token)
            cached = await self.cache.get(key)
            if cached is not None:
                return cached

        body = await self.request("GET", path, token=token, params=params)

        if key is not None and body is not None:
            await self.cache.set(key, body, tags=tags, ttl=ttl)
        return body

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request("POST", path, **kwargs)

    async def patch(self, path: str, **kwargs) -> Any:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def revalidate(self, *tags: RevalidateTag) -> None:
        if self.cache is not None:
            await self.cache.revalidate(*tags)


def create_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.BACKEND_URL,
        timeout=settings.BACKEND_TIMEOUT_SECONDS,
    )


def get_backend(request: Request) -> BackendClient:
    """Dependency returning the client created in the app lifespan."""
    return request.app.state.backend
