# products_api/handlers/product_handlers.py
import logging
from typing import Optional
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from .base_handler import ValidatedRequest, get_product_service, validated
from ..exceptions import AppError, NotFoundError
from ..middleware.auth import AuthContext, authenticate, optional_authenticate
from ..middleware.rate_limit import rate_limit
from ..models.product import ProductQuery
from ..services.product_service import ProductService
from ..utils.formatters import format_datetime, format_product, success_response, utc_now
from ..validation.schemas import (
    create_product_schema,
    product_id_schema,
    product_query_schema,
    search_query_schema,
    update_product_schema,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["Products"])


@router.get("")
async def list_products(
    req: ValidatedRequest = Depends(validated(query=product_query_schema)),
    auth: Optional[AuthContext] = Depends(optional_authenticate),
    products: ProductService = Depends(get_product_service),
):
    query = ProductQuery.from_request(req.query)
    if auth is not None:
        logger.debug(f"Product list requested by user {auth.user.user_id}")
    result = await products.get_products(query)
    return success_response("Products retrieved successfully", result)


@router.get("/categories")
async def list_categories(products: ProductService = Depends(get_product_service)):
    categories = await products.get_categories()
    return success_response("Categories retrieved successfully", categories)


@router.get("/statistics")
async def get_statistics(
    auth: AuthContext = Depends(authenticate),
    products: ProductService = Depends(get_product_service),
):
    statistics = await products.get_statistics()
    return success_response("Product statistics retrieved successfully", statistics)


@router.get("/search")
async def search_products(
    req: ValidatedRequest = Depends(validated(query=search_query_schema)),
    products: ProductService = Depends(get_product_service),
):
    search_term = req.query.get("q")
    if not search_term:
        raise AppError("Search term is required", 400, "SEARCH_TERM_REQUIRED")

    limit = req.query["limit"]
    results = await products.search_products(search_term, limit)
    formatted = [format_product(p) for p in results]
    return success_response(
        "Products search completed",
        formatted,
        meta={"searchTerm": search_term, "resultsCount": len(formatted), "limit": limit},
    )


@router.get("/{id}")
async def get_product(
    req: ValidatedRequest = Depends(validated(params=product_id_schema)),
    products: ProductService = Depends(get_product_service),
):
    product = await products.get_product(req.params["id"])
    if product is None:
        raise NotFoundError("Product not found", code="PRODUCT_NOT_FOUND")
    return success_response("Product retrieved successfully", format_product(product))


@router.post("", dependencies=[Depends(rate_limit("product_create"))])
async def create_product(
    auth: AuthContext = Depends(authenticate),
    req: ValidatedRequest = Depends(validated(body=create_product_schema)),
    products: ProductService = Depends(get_product_service),
):
    logger.info(f"Create product request from user {auth.user.user_id}")
    product = await products.add_product(req.body)
    return JSONResponse(
        success_response("Product created successfully", format_product(product)),
        status_code=201,
    )


@router.put("/{id}")
async def update_product(
    auth: AuthContext = Depends(authenticate),
    req: ValidatedRequest = Depends(validated(params=product_id_schema, body=update_product_schema)),
    products: ProductService = Depends(get_product_service),
):
    product = await products.update_product(req.params["id"], req.body)
    return success_response("Product updated successfully", format_product(product))


@router.delete("/{id}")
async def delete_product(
    auth: AuthContext = Depends(authenticate),
    req: ValidatedRequest = Depends(validated(params=product_id_schema)),
    products: ProductService = Depends(get_product_service),
):
    product_id = req.params["id"]
    await products.delete_product(product_id)
    return success_response(
        "Product deleted successfully",
        {"id": product_id, "deletedAt": format_datetime(utc_now())},
    )
