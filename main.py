"""
FastAPI application entry point.
"""
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from api.routes import payments as payments_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from application.context import AppContext
from core.config import Settings, settings as default_settings
from core.exceptions import register_exception_handlers
from core.logging_config import get_logger, configure_logging
from infrastructure.context import build_context


# Configure logging explicitly at the entry point, not as an import side effect
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the application context unless one was injected, and close it on shutdown."""
    owned = getattr(app.state, "context", None) is None
    if owned:
        app.state.context = build_context()
    context: AppContext = app.state.context
    logger.info(
        "application_startup",
        environment=context.settings.ENVIRONMENT,
        gateway_env=context.gateway_settings.environment,
        api_prefix=context.settings.API_PREFIX or "/",
    )
    yield
    if owned:
        await context.aclose()
    logger.info("application_shutdown", message="Application shutdown")


def create_app(context: Optional[AppContext] = None, app_settings: Optional[Settings] = None) -> FastAPI:
    """Application factory; tests pass a context built around fakes."""
    cfg = app_settings or (context.settings if context else default_settings)
    app = FastAPI(
        title=cfg.PROJECT_NAME,
        version=cfg.VERSION,
        debug=cfg.DEBUG,
        lifespan=lifespan,
        description="Payment orchestration for ranch bookings",
    )
    if context is not None:
        app.state.context = context

    # Middleware runs bottom-up: CORS first, then request id, then logging
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware, trusted_proxy_hops=cfg.TRUSTED_PROXY_HOPS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ORIGINS,
        allow_origin_regex=cfg.CORS_ORIGIN_REGEX,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    register_exception_handlers(app)
    app.include_router(payments_routes.router, prefix=cfg.API_PREFIX)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.DEBUG,
        log_level="debug" if default_settings.DEBUG else "info"
    )
