import logging
from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi_limiter import FastAPILimiter
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import urls
from .backend import BackendClient, create_http_client
from .cache import ResponseCache
from .config import settings
from .exceptions import BackendError, BackendUnavailableError, SessionRequiredError
from .logging_config import setup_logging
from .middleware import RouteGuardMiddleware
from .routers import admin_router, auth_router, dashboard_router, public_router
from .templates import redirect, render

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger("edgehomes")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Opens the Redis connection (response cache and rate limits) and the
    backend HTTP client, and closes both on shutdown.
    """
    redis_client = None
    cache = None
    try:
        redis_client = redis.from_url(settings.REDIS_URL, encoding="utf-8")
        await FastAPILimiter.init(redis_client)
        cache = ResponseCache(redis_client, default_ttl=settings.CACHE_TTL_SECONDS)
        logger.info("FastAPILimiter and response cache initialized with Redis.")
    except Exception as e:
        logger.error(f"Failed to initialize Redis: {e}")

    http = create_http_client()
    app.state.backend = BackendClient(http, cache)

    yield

    logger.info("Shutting down...")
    await http.aclose()
    if redis_client is not None:
        await redis_client.close()


app = FastAPI(
    title="EdgeHomes",
    description="Rental listings, bookings and property management.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RouteGuardMiddleware)

app.include_router(public_router.router)
app.include_router(auth_router.router)
app.include_router(admin_router.router)
app.include_router(dashboard_router.router)


@app.exception_handler(SessionRequiredError)
async def session_required_handler(request: Request, exc: SessionRequiredError):
    target = exc.sign_in_url
    if exc.redirect_to:
        target = urls.with_redirect(exc.sign_in_url, exc.redirect_to)
    return redirect(target)


@app.exception_handler(BackendError)
async def backend_error_handler(request: Request, exc: BackendError):
    status_code = 503 if isinstance(exc, BackendUnavailableError) else 502
    logger.error(f"Unhandled backend error on {request.url.path}: {exc.message}")
    return render(request, "error.html", {"message": exc.message}, status_code=status_code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return render(request, "not_found.html", {"message": exc.detail}, status_code=404)
    return render(request, "error.html", {"message": exc.detail}, status_code=exc.status_code)
