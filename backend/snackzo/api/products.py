"""
Products API Endpoints
Catalogue browsing: products, product detail and categories
"""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from snackzo.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def get_products(
    category_id: Optional[str] = Query(None, description="Filter by category"),
    search: Optional[str] = Query(None, description="Search by name or description"),
    available_only: bool = Query(True, description="Only products that can be ordered"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0)
):
    """Get products with optional filters"""
    try:
        repo = ProductRepository()
        products, total = repo.find_all(
            category_id=category_id,
            search=search,
            available_only=available_only,
            limit=limit,
            offset=offset
        )

        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(products),
            "data": [product.to_dict() for product in products]
        }

    except Exception as e:
        logger.error(f"Error fetching products: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching products: {str(e)}")


@router.get("/categories")
async def get_categories():
    """Categories in storefront order"""
    try:
        categories = ProductRepository().find_categories()
        return {
            "status": "success",
            "count": len(categories),
            "data": [category.model_dump() for category in categories]
        }

    except Exception as e:
        logger.error(f"Error fetching categories: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching categories: {str(e)}")


@router.get("/{product_id}")
async def get_product(product_id: str):
    """Product detail with image gallery"""
    try:
        product = ProductRepository().find_by_id(product_id)

        if not product:
            raise HTTPException(status_code=404, detail=f"Product {product_id} not found")

        return {
            "status": "success",
            "data": product.to_dict()
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching product {product_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching product: {str(e)}")
