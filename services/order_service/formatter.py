"""
Read side of orders: the nested view returned to clients.

Line items carry both the sale-time `unit_price` and the product's
`current_price`; `subtotal` is always quantity x unit_price.
"""
from collections import defaultdict
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from services.shipping_service.schemas import PackageDimensions
from shared.money import to_money
from .repository import OrderRepository
from .schemas import (
    CustomerSummary,
    DeliveryAddress,
    LineItemDetail,
    OrderDetail,
    ProductSnapshot,
    ShippingDetail,
)


def _package(order) -> Optional[PackageDimensions]:
    dims = (order.package_weight, order.package_height, order.package_width, order.package_length)
    if any(d is None for d in dims):
        return None
    return PackageDimensions(weight_kg=dims[0], height_cm=dims[1], width_cm=dims[2], length_cm=dims[3])


def _line_item(item, product) -> LineItemDetail:
    unit_price = to_money(item.unit_price)
    return LineItemDetail(
        id=item.id,
        product=ProductSnapshot(
            id=product.id,
            name=product.name,
            current_price=to_money(product.price),
            image=product.image,
        ),
        quantity=item.quantity,
        unit_price=unit_price,
        subtotal=to_money(unit_price * item.quantity),
    )


def build_order_detail(order, customer, address, line_rows) -> OrderDetail:
    return OrderDetail(
        id=order.id,
        created_at=order.created_at,
        status=order.status,
        product_subtotal=to_money(order.product_subtotal),
        total=to_money(order.total),
        carrier_shipment_id=order.carrier_shipment_id,
        tracking_code=order.tracking_code,
        shipping=ShippingDetail(
            price=to_money(order.shipping_price),
            carrier_name=order.carrier_name,
            service_name=order.shipping_service,
            service_id=order.shipping_service_id,
            estimated_days=order.shipping_days,
        ),
        package=_package(order),
        customer=CustomerSummary(
            id=customer.id,
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
        ),
        delivery_address=DeliveryAddress(
            id=address.id,
            postal_code=address.postal_code,
            street=address.street,
            number=address.number,
            complement=address.complement,
            neighborhood=address.neighborhood,
            city=address.city,
            region=address.region,
            reference=address.reference,
        ),
        items=[_line_item(item, product) for item, product in line_rows],
    )


class OrderFormatter:
    """Read-only; never mutates what it reads."""

    @staticmethod
    async def get_order_details(db: AsyncSession, order_id: int) -> Optional[OrderDetail]:
        row = await OrderRepository.get_order_row(db, order_id)
        if row is None:
            return None
        order, customer, address = row
        line_rows = await OrderRepository.get_line_rows(db, [order.id])
        return build_order_detail(order, customer, address, line_rows)

    @staticmethod
    async def list_orders(db: AsyncSession) -> List[OrderDetail]:
        """Every order, newest first (ties broken by higher id first)."""
        rows = await OrderRepository.list_order_rows(db)
        if not rows:
            return []

        lines_by_order = defaultdict(list)
        for item, product in await OrderRepository.get_line_rows(db, [order.id for order, _, _ in rows]):
            lines_by_order[item.order_id].append((item, product))

        return [
            build_order_detail(order, customer, address, lines_by_order[order.id])
            for order, customer, address in rows
        ]
