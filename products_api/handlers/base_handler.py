# products_api/handlers/base_handler.py
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from fastapi import Request
from ..services.auth_service import AuthService
from ..services.product_service import ProductService
from ..validation.engine import Schema, validate_request

_INVALID_JSON = object()


@dataclass
class ValidatedRequest:
    """Coerced input for each request surface"""
    body: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, Any] = field(default_factory=dict)


def get_product_service(request: Request) -> ProductService:
    return request.app.state.product_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


async def _read_body(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return _INVALID_JSON


def validated(body: Optional[Schema] = None, params: Optional[Schema] = None,
              query: Optional[Schema] = None, headers: Optional[Schema] = None):
    """Dependency validating the given request surfaces before the handler runs"""
    async def dependency(request: Request) -> ValidatedRequest:
        inputs = {
            "body": await _read_body(request) if body is not None else None,
            "params": dict(request.path_params),
            "query": dict(request.query_params),
            "headers": dict(request.headers),
        }
        result = validate_request(inputs, body=body, params=params, query=query, headers=headers)
        return ValidatedRequest(**{
            surface: value if value is not None else {}
            for surface, value in result.items()
        })

    return dependency
