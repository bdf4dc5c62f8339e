"""HTTP route handlers"""
from .auth_handlers import router as auth_router
from .health_handlers import router as health_router
from .product_handlers import router as product_router

__all__ = [
    'auth_router',
    'health_router',
    'product_router',
]
