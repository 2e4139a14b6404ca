"""
Application factory and entry point.
"""

import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
from fastapi import FastAPI, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from loguru import logger

from loginbridge.challenge.router import JSON_PATHS, router
from loginbridge.challenge.templater import error_page
from loginbridge.config import Settings, get_settings
from loginbridge.environment import Environment, build_environment
from loginbridge.errors import AppError


def configure_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper(), serialize=settings.log_json)


async def handle_app_error(request: Request, exc: AppError):
    """
    Render a bridge error: follow the authorization server's redirect when there is
    one, otherwise show an error page (or an OAuth2 JSON error for API paths).
    """
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
    else:
        logger.warning(f"{request.method} {request.url.path} failed: {exc!r}")
    if exc.redirect_to:
        return RedirectResponse(url=exc.redirect_to, status_code=status.HTTP_302_FOUND)
    if request.url.path in JSON_PATHS:
        return JSONResponse(
            content={"error": exc.error, "error_description": exc.description},
            status_code=exc.status_code,
        )
    return HTMLResponse(
        content=error_page(exc.error, exc.description),
        status_code=exc.status_code,
    )


def create_app(env: Optional[Environment] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the ASGI app. When ``env`` is given (tests) it is used as-is; otherwise the
    collaborators are wired from settings during startup.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        redis_client = None
        if env is None:
            redis_client = redis.Redis.from_url(settings.redis_url)
            app.state.env = build_environment(settings, redis_client)
            logger.info(
                f"Bridging Hydra admin at {settings.hydra_admin_url} (login_mode={settings.login_mode})"
            )
        yield
        if redis_client is not None:
            await redis_client.aclose()

    app = FastAPI(title="loginbridge", lifespan=lifespan)
    app.state.env = env
    app.state.flow_timeout = settings.flow_timeout
    app.state.enable_test_client = settings.enable_test_client
    app.state.cookie_secure = settings.cookie_secure
    app.add_exception_handler(AppError, handle_app_error)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started_at = time.monotonic()
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            elapsed_ms = (time.monotonic() - started_at) * 1000
            logger.info(
                f"{request.method} {request.url.path} -> {status_code} ({elapsed_ms:.1f}ms)"
            )

    app.include_router(router)
    return app


def main():
    import uvicorn

    settings = get_settings()
    configure_logging(settings)
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
