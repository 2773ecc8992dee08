from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mani_shop.api.dependencies import to_http_exception
from mani_shop.core.exceptions import ShopError
from mani_shop.db.session import get_db
from mani_shop.schemas.product import ProductEnvelope, ProductListResponse
from mani_shop.services.product import get_product, list_products, product_to_response

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=ProductListResponse)
async def browse_products(
    category: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """List the catalogue, optionally filtered by category."""
    products = await list_products(db, category)
    return ProductListResponse(
        count=len(products),
        products=[product_to_response(p) for p in products]
    )


@router.get("/{product_id}", response_model=ProductEnvelope)
async def product_detail(
    product_id: int,
    db: AsyncSession = Depends(get_db)
):
    try:
        product = await get_product(db, product_id)
    except ShopError as e:
        raise to_http_exception(e)
    return ProductEnvelope(product=product_to_response(product))
