from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from mani_shop.core.exceptions import NotFoundError
from mani_shop.db.models import Product
from mani_shop.schemas.product import ProductResponse


def product_to_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        name=product.name,
        brand=product.brand,
        category=product.category,
        description=product.description,
        image=product.image,
        price=product.price,
        stock=product.stock,
        weight=product.weight
    )


async def get_product(db: AsyncSession, product_id: int) -> Product:
    result = await db.execute(select(Product).where(Product.id == product_id))
    product = result.scalar_one_or_none()
    if not product:
        raise NotFoundError("Product not found")
    return product


async def list_products(db: AsyncSession, category: Optional[str] = None) -> List[Product]:
    query = select(Product).order_by(Product.id)
    if category:
        query = query.where(Product.category == category)
    result = await db.execute(query)
    return list(result.scalars().all())
