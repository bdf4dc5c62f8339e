# products_api/handlers/health_handlers.py
import logging
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from ..utils.formatters import format_datetime, utc_now

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


async def _health(request: Request) -> JSONResponse:
    config = request.app.state.config
    db_healthy = await request.app.state.db.health_check()

    return JSONResponse(
        {
            "status": "ok" if db_healthy else "degraded",
            "timestamp": format_datetime(utc_now()),
            "version": config.VERSION,
            "environment": config.APP_ENV,
            "services": {
                "api": "healthy",
                "database": "healthy" if db_healthy else "unhealthy",
            },
        },
        status_code=200 if db_healthy else 503,
    )


@router.get("/health")
async def health(request: Request):
    return await _health(request)


@router.get("/api/health")
async def api_health(request: Request):
    return await _health(request)


@router.get("/api/info")
async def info(request: Request):
    config = request.app.state.config
    return {
        "name": "Products Demo API",
        "description": "Product inventory and user authentication API backed by PostgreSQL",
        "version": config.VERSION,
        "environment": config.APP_ENV,
        "documentation": "/api-docs" if config.docs_enabled() else None,
        "endpoints": {
            "health": "/api/health",
            "authentication": "/api/auth",
            "products": "/api/products",
        },
        "timestamp": format_datetime(utc_now()),
    }


@router.get("/")
async def root(request: Request):
    config = request.app.state.config
    return {
        "message": "Welcome to Products Demo API",
        "version": config.VERSION,
        "documentation": "/api-docs" if config.docs_enabled() else None,
        "health": "/health",
        "timestamp": format_datetime(utc_now()),
    }
