# products_api/app.py
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from .config import Config
from .database import Database
from .handlers import auth_router, health_router, product_router
from .middleware.auth import AuthenticationGate
from .middleware.errors import register_exception_handlers
from .middleware.rate_limit import RateLimiter
from .middleware.request import RequestContextMiddleware, RequestTimeoutMiddleware
from .services import AuthService, ProductService

logger = logging.getLogger(__name__)


def build_rate_limiters(config: Config):
    window = config.RATE_LIMIT_WINDOW
    return {
        "register": RateLimiter(
            "register", config.RATE_LIMIT_REGISTER, window,
            "Too many registration attempts from this IP, please try again later.",
        ),
        "login": RateLimiter(
            "login", config.RATE_LIMIT_LOGIN, window,
            "Too many login attempts from this IP, please try again later.",
        ),
        "product_create": RateLimiter(
            "product_create", config.RATE_LIMIT_PRODUCT_CREATE, window,
            "Too many products created from this IP, please try again later.",
        ),
    }


def create_app(config: Optional[Config] = None, db=None) -> FastAPI:
    """Wire services, middleware and routes into a FastAPI application"""
    config = config or Config()
    db = db if db is not None else Database(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await db.connect()
        logger.info(f"Products API started in {config.APP_ENV} mode")
        try:
            yield
        finally:
            await db.close()
            logger.info("Products API stopped")

    docs_enabled = config.docs_enabled()
    app = FastAPI(
        title="Products Demo API",
        version=config.VERSION,
        lifespan=lifespan,
        docs_url="/api-docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/api-docs/openapi.json" if docs_enabled else None,
    )

    auth_service = AuthService(db, config)
    app.state.config = config
    app.state.db = db
    app.state.auth_service = auth_service
    app.state.product_service = ProductService(db)
    app.state.auth_gate = AuthenticationGate(auth_service)
    app.state.rate_limiters = build_rate_limiters(config)

    # Added innermost first
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestTimeoutMiddleware, timeout=config.REQUEST_TIMEOUT)
    app.add_middleware(RequestContextMiddleware)

    register_exception_handlers(app, config)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(product_router)

    return app
