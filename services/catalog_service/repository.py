from typing import Optional, Sequence

from sqlalchemy import exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.models import OrderLineItem
from .models import Product


class ProductRepository:

    @staticmethod
    async def create_product(db: AsyncSession, product: Product) -> Product:
        db.add(product)
        await db.commit()
        await db.refresh(product)
        return product

    @staticmethod
    async def get_all_products(db: AsyncSession) -> Sequence[Product]:
        result = await db.execute(select(Product).order_by(Product.id))
        return result.scalars().all()

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: int) -> Optional[Product]:
        result = await db.execute(select(Product).where(Product.id == product_id))
        return result.scalars().first()

    @staticmethod
    async def update_product(db: AsyncSession, product: Product) -> Product:
        db.add(product)
        await db.commit()
        await db.refresh(product)
        return product

    @staticmethod
    async def delete_product(db: AsyncSession, product: Product):
        await db.delete(product)
        await db.commit()

    @staticmethod
    async def is_referenced_by_orders(db: AsyncSession, product_id: int) -> bool:
        result = await db.execute(
            select(exists().where(OrderLineItem.product_id == product_id))
        )
        return bool(result.scalar())

    @staticmethod
    async def decrement_stock(db: AsyncSession, product_id: int, quantity: int) -> int:
        """
        Guarded decrement. Runs inside the caller's transaction and does not
        commit. Returns the number of rows affected: 0 means the row is gone
        or another order took the stock first.
        """
        result = await db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
