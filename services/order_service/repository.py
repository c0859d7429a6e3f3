from typing import Iterable, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from services.catalog_service.models import Product
from services.customer_service.models import Address, Customer
from .models import Order, OrderLineItem


class OrderRepository:
    """
    Query helpers. Writers run inside the caller's transaction and never
    commit on their own.
    """

    @staticmethod
    async def add_order(db: AsyncSession, order: Order) -> Order:
        db.add(order)
        await db.flush()
        return order

    @staticmethod
    async def add_line_item(db: AsyncSession, item: OrderLineItem) -> OrderLineItem:
        db.add(item)
        await db.flush()
        return item

    @staticmethod
    async def get_order_row(db: AsyncSession, order_id: int):
        """(Order, Customer, Address) or None."""
        result = await db.execute(
            select(Order, Customer, Address)
            .join(Customer, Order.customer_id == Customer.id)
            .join(Address, Order.delivery_address_id == Address.id)
            .where(Order.id == order_id)
        )
        return result.first()

    @staticmethod
    async def list_order_rows(db: AsyncSession):
        result = await db.execute(
            select(Order, Customer, Address)
            .join(Customer, Order.customer_id == Customer.id)
            .join(Address, Order.delivery_address_id == Address.id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return result.all()

    @staticmethod
    async def get_line_rows(db: AsyncSession, order_ids: Iterable[int]):
        """(OrderLineItem, Product) rows for the given orders, in insertion order."""
        order_ids = list(order_ids)
        if not order_ids:
            return []
        result = await db.execute(
            select(OrderLineItem, Product)
            .join(Product, OrderLineItem.product_id == Product.id)
            .where(OrderLineItem.order_id.in_(order_ids))
            .order_by(OrderLineItem.order_id, OrderLineItem.id)
        )
        return result.all()

    @staticmethod
    async def update_status(db: AsyncSession, order_id: int, status: str) -> int:
        result = await db.execute(
            update(Order)
            .where(Order.id == order_id)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    async def get_orders_by_shipment_ids(db: AsyncSession, shipment_ids: Sequence[str]) -> Sequence[Order]:
        result = await db.execute(select(Order).where(Order.carrier_shipment_id.in_(list(shipment_ids))))
        return result.scalars().all()

    @staticmethod
    async def set_shipment(
        db: AsyncSession,
        order_id: int,
        shipment_id: str,
        tracking_code: Optional[str],
        status: str,
    ) -> int:
        result = await db.execute(
            update(Order)
            .where(Order.id == order_id, Order.carrier_shipment_id.is_(None))
            .values(carrier_shipment_id=shipment_id, tracking_code=tracking_code, status=status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
