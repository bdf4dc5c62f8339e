# products_api/utils/formatters.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Union
import pytz
from ..models.product import Product
from ..models.user import AuthResult, PublicUser

def utc_now() -> datetime:
    return datetime.now(pytz.utc)

def format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 in UTC with millisecond precision, e.g. 2023-08-29T10:00:00.000Z"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    dt = dt.astimezone(pytz.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"

def format_timestamp(epoch_seconds: Optional[int]) -> Optional[str]:
    if epoch_seconds is None:
        return None
    return format_datetime(datetime.fromtimestamp(epoch_seconds, pytz.utc))

def format_price(amount: Union[Decimal, float, int, None]) -> float:
    """JSON number for a price column"""
    if amount is None:
        return 0.0
    return float(amount)

def format_product(product: Product) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": format_price(product.price),
        "category": product.category,
        "createdAt": format_datetime(product.created_at),
        "updatedAt": format_datetime(product.updated_at),
    }

def format_user(user: PublicUser) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "createdAt": format_datetime(user.created_at),
        "updatedAt": format_datetime(user.updated_at),
    }

def success_response(message: str, data: Any, **extra: Any) -> Dict[str, Any]:
    """Success envelope shared by every handler"""
    body = {
        "success": True,
        "message": message,
        "data": data,
    }
    body.update(extra)
    body["timestamp"] = format_datetime(utc_now())
    return body

def format_auth_result(result: AuthResult) -> Dict[str, Any]:
    return {
        "user": format_user(result.user),
        "token": result.token,
        "expiresIn": result.expires_in,
    }
