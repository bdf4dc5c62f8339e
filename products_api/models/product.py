# products_api/models/product.py
from decimal import Decimal
from typing import Optional, Literal
from pydantic import BaseModel
from .base import TimeStampedModel

class Product(TimeStampedModel):
    """Product row as returned by the stored functions"""
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    category: str


class ProductQuery(BaseModel):
    """Request-scoped list descriptor, built from the validated query string"""
    page_number: int = 1
    page_size: int = 10
    category: Optional[str] = None
    search_term: Optional[str] = None
    # Accepted and validated, not forwarded to the store
    sort_by: Literal["name", "price", "category", "createdAt"] = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"
    min_price: Optional[float] = None
    max_price: Optional[float] = None

    @classmethod
    def from_request(cls, query: dict) -> "ProductQuery":
        return cls(
            page_number=query.get("pageNumber", 1),
            page_size=query.get("pageSize", 10),
            category=query.get("category"),
            search_term=query.get("searchTerm"),
            sort_by=query.get("sortBy", "createdAt"),
            sort_order=query.get("sortOrder", "desc"),
            min_price=query.get("minPrice"),
            max_price=query.get("maxPrice"),
        )
