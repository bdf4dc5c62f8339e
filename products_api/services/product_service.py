# products_api/services/product_service.py
import math
import logging
from decimal import Decimal
from typing import List, Dict, Optional, Any
from ..exceptions import AppError, NotFoundError
from ..models.product import Product, ProductQuery
from ..utils.formatters import format_price, format_product

_PRICE_BUCKET = """
    CASE
        WHEN price < 50 THEN 'Under $50'
        WHEN price < 100 THEN '$50 - $99'
        WHEN price < 500 THEN '$100 - $499'
        WHEN price < 1000 THEN '$500 - $999'
        ELSE 'Over $1000'
    END
"""


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_rank(name: str, term: str) -> int:
    """1 for an exact name match, 2 for a prefix match, 3 otherwise"""
    name, term = name.lower(), term.lower()
    if name == term:
        return 1
    if name.startswith(term):
        return 2
    return 3


class ProductService:
    """Product queries over the stored functions"""

    def __init__(self, db):
        self.db = db
        self.logger = logging.getLogger(__name__)

    async def get_products(self, query: ProductQuery) -> Dict[str, Any]:
        """One page of products plus pagination metadata.

        The min/max price filter runs on the fetched page only, so
        ``totalCount`` and ``totalPages`` still describe the unfiltered
        result.
        """
        self.logger.debug(f"Getting products with query: {query}")
        # sort_by/sort_order are not part of the get_products contract
        try:
            rows = await self.db.execute_procedure("get_products", {
                "p_page_number": query.page_number,
                "p_page_size": query.page_size,
                "p_category": query.category or None,
                "p_search_term": query.search_term or None,
            })
        except Exception as e:
            self.logger.error(f"Error getting products: {e}")
            raise AppError("Failed to retrieve products", 500, "PRODUCTS_FETCH_ERROR") from e

        filters = self._applied_filters(query)

        if not rows:
            result = {
                "products": [],
                "pagination": {
                    "currentPage": query.page_number,
                    "pageSize": query.page_size,
                    "totalCount": 0,
                    "totalPages": 0,
                    "hasNextPage": False,
                    "hasPreviousPage": False,
                },
            }
            if filters:
                result["filters"] = filters
            return result

        total_count = int(rows[0].get("total_count") or 0)
        total_pages = math.ceil(total_count / query.page_size)

        products = [Product.model_validate(row) for row in rows]
        if query.min_price is not None or query.max_price is not None:
            products = [p for p in products if self._in_price_range(p, query)]

        result = {
            "products": [format_product(p) for p in products],
            "pagination": {
                "currentPage": query.page_number,
                "pageSize": query.page_size,
                "totalCount": total_count,
                "totalPages": total_pages,
                "hasNextPage": query.page_number < total_pages,
                "hasPreviousPage": query.page_number > 1,
            },
        }
        if filters:
            result["filters"] = filters
        return result

    async def get_product(self, product_id: int) -> Optional[Product]:
        """Product by id, or None when it does not exist"""
        self.logger.debug(f"Getting product by ID: {product_id}")
        try:
            rows = await self.db.execute_procedure("get_product_by_id", {"p_id": product_id})
        except Exception as e:
            self.logger.error(f"Error getting product by ID {product_id}: {e}")
            raise AppError("Failed to retrieve product", 500, "PRODUCT_FETCH_ERROR") from e

        return Product.model_validate(rows[0]) if rows else None

    async def add_product(self, product_data: Dict[str, Any]) -> Product:
        self.logger.debug(
            f"Creating product: {product_data.get('name')} ({product_data.get('category')})"
        )
        try:
            rows = await self.db.execute_procedure("create_product", {
                "p_name": product_data["name"],
                "p_description": product_data.get("description") or None,
                "p_price": Decimal(str(product_data["price"])),
                "p_category": product_data["category"],
            })
        except Exception as e:
            self.logger.error(f"Error creating product: {e}")
            raise AppError("Failed to create product", 500, "PRODUCT_CREATE_ERROR") from e

        if not rows:
            raise AppError("Failed to create product - no data returned", 500, "PRODUCT_CREATE_ERROR")

        product = Product.model_validate(rows[0])
        self.logger.info(f"Product created successfully: {product.id}")
        return product

    async def update_product(self, product_id: int, product_data: Dict[str, Any]) -> Product:
        """Merge ``product_data`` over the stored product and save it.

        Absent keys keep their stored value. An explicit empty description
        clears it.
        """
        existing = await self._require_product(product_id)

        def pick(key: str):
            value = product_data.get(key)
            return value if value is not None else getattr(existing, key)

        if "description" in product_data:
            description = product_data["description"] or None
        else:
            description = existing.description

        try:
            rows = await self.db.execute_procedure("update_product", {
                "p_id": product_id,
                "p_name": pick("name"),
                "p_description": description,
                "p_price": Decimal(str(pick("price"))),
                "p_category": pick("category"),
            })
        except Exception as e:
            self.logger.error(f"Error updating product {product_id}: {e}")
            raise AppError("Failed to update product", 500, "PRODUCT_UPDATE_ERROR") from e

        if not rows:
            raise AppError("Failed to update product - no data returned", 500, "PRODUCT_UPDATE_ERROR")

        self.logger.info(f"Product updated successfully: {product_id}")
        return Product.model_validate(rows[0])

    async def delete_product(self, product_id: int) -> None:
        await self._require_product(product_id)

        try:
            await self.db.execute_procedure("delete_product", {"p_id": product_id})
        except Exception as e:
            self.logger.error(f"Error deleting product {product_id}: {e}")
            raise AppError("Failed to delete product", 500, "PRODUCT_DELETE_ERROR") from e

        self.logger.info(f"Product deleted successfully: {product_id}")

    async def get_categories(self) -> List[str]:
        try:
            rows = await self.db.execute_query(
                "SELECT DISTINCT category FROM products ORDER BY category"
            )
        except Exception as e:
            self.logger.error(f"Error getting categories: {e}")
            raise AppError("Failed to retrieve categories", 500, "CATEGORIES_FETCH_ERROR") from e

        return [row["category"] for row in rows]

    async def search_products(self, search_term: str, limit: int = 10) -> List[Product]:
        """Name/description search ranked exact, prefix, then substring"""
        self.logger.debug(f"Searching products for: {search_term}")
        escaped = _escape_like(search_term)
        try:
            rows = await self.db.execute_query(
                """
                SELECT id, name, description, price, category, created_at, updated_at
                FROM products
                WHERE name ILIKE $1 OR description ILIKE $1
                ORDER BY
                    CASE
                        WHEN name ILIKE $2 THEN 1
                        WHEN name ILIKE $3 THEN 2
                        ELSE 3
                    END,
                    name
                LIMIT $4
                """,
                f"%{escaped}%",
                escaped,
                f"{escaped}%",
                limit,
            )
        except Exception as e:
            self.logger.error(f"Error searching products: {e}")
            raise AppError("Failed to search products", 500, "PRODUCT_SEARCH_ERROR") from e

        products = [Product.model_validate(row) for row in rows]
        products.sort(key=lambda p: (search_rank(p.name, search_term), p.name.lower()))
        return products[:limit]

    async def get_statistics(self) -> Dict[str, Any]:
        self.logger.debug("Getting product statistics")
        try:
            totals = await self.db.execute_query(
                "SELECT COUNT(*) AS total_products, AVG(price) AS average_price FROM products"
            )
            categories = await self.db.execute_query(
                """
                SELECT
                    category,
                    COUNT(*) AS count,
                    AVG(price) AS average_price,
                    MIN(price) AS min_price,
                    MAX(price) AS max_price
                FROM products
                GROUP BY category
                ORDER BY count DESC
                """
            )
            price_ranges = await self.db.execute_query(
                f"""
                SELECT {_PRICE_BUCKET} AS price_range, COUNT(*) AS count
                FROM products
                GROUP BY 1
                ORDER BY count DESC
                """
            )
        except Exception as e:
            self.logger.error(f"Error getting product statistics: {e}")
            raise AppError("Failed to retrieve statistics", 500, "STATISTICS_FETCH_ERROR") from e

        total_products = int(totals[0]["total_products"] or 0) if totals else 0
        average_price = totals[0]["average_price"] if totals else None

        return {
            "totalProducts": total_products,
            "averagePrice": format_price(average_price),
            "categories": [
                {
                    "category": row["category"],
                    "count": int(row["count"]),
                    "averagePrice": format_price(row["average_price"]),
                    "minPrice": format_price(row["min_price"]),
                    "maxPrice": format_price(row["max_price"]),
                }
                for row in categories
            ],
            "priceRanges": [
                {
                    "range": row["price_range"],
                    "count": int(row["count"]),
                    "percentage": (int(row["count"]) / total_products) * 100 if total_products > 0 else 0,
                }
                for row in price_ranges
            ],
        }

    async def _require_product(self, product_id: int) -> Product:
        product = await self.get_product(product_id)
        if product is None:
            raise NotFoundError("Product not found", code="PRODUCT_NOT_FOUND")
        return product

    @staticmethod
    def _in_price_range(product: Product, query: ProductQuery) -> bool:
        price = float(product.price)
        if query.min_price is not None and price < query.min_price:
            return False
        if query.max_price is not None and price > query.max_price:
            return False
        return True

    @staticmethod
    def _applied_filters(query: ProductQuery) -> Dict[str, Any]:
        filters: Dict[str, Any] = {}
        if query.category:
            filters["category"] = query.category
        if query.search_term:
            filters["searchTerm"] = query.search_term
        if query.min_price is not None:
            filters["minPrice"] = query.min_price
        if query.max_price is not None:
            filters["maxPrice"] = query.max_price
        return filters
