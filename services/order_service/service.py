from typing import List, Sequence, Union

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from services.customer_service.repository import CustomerRepository
from services.shipping_service.port import CarrierPort
from services.shipping_service.schemas import (
    DeclaredProduct,
    ShipmentParty,
    ShipmentRequest,
)
from shared.config import settings
from shared.errors import ConflictError, NotFoundError, ValidationError
from shared.observability import (
    storefront_order_placement_duration_seconds,
    storefront_orders_placed_total,
)
from .formatter import OrderFormatter
from .models import OrderStatus
from .placement import PlacementContext, build_placement_workflow
from .repository import OrderRepository
from .schemas import LabelStatusResult, OrderDetail, OrderPlacedDegraded, PlaceOrderRequest

logger = structlog.get_logger(__name__)


def _check_status(new_status: str) -> str:
    if new_status not in OrderStatus.values():
        raise ValidationError(
            f"Unknown order status '{new_status}'",
            allowed=OrderStatus.values(),
        )
    return new_status


def store_sender() -> ShipmentParty:
    return ShipmentParty(
        name=settings.STORE_NAME,
        phone=settings.STORE_PHONE or None,
        email=settings.STORE_EMAIL or None,
        document=settings.STORE_DOCUMENT or None,
        street=settings.STORE_STREET or None,
        number=settings.STORE_NUMBER or None,
        complement=settings.STORE_COMPLEMENT,
        district=settings.STORE_DISTRICT or None,
        city=settings.STORE_CITY or None,
        state=settings.STORE_STATE or None,
        postal_code=settings.STORE_ORIGIN_POSTAL_CODE,
    )


class OrderService:
    """
    Order placement and lifecycle.

    The session factory and carrier are handed in by the caller, so tests run
    the real workflow against SQLite and an in-memory carrier.
    """

    def __init__(
        self,
        sessions: async_sessionmaker,
        carrier: CarrierPort,
        origin_postal_code: str = settings.STORE_ORIGIN_POSTAL_CODE,
    ):
        self.sessions = sessions
        self.carrier = carrier
        self.origin_postal_code = origin_postal_code
        self.workflow = build_placement_workflow()

    async def place_order(
        self, payload: Union[PlaceOrderRequest, dict]
    ) -> Union[OrderDetail, OrderPlacedDegraded]:
        ctx = PlacementContext(
            payload=payload,
            sessions=self.sessions,
            carrier=self.carrier,
            origin_postal_code=self.origin_postal_code,
        )
        with storefront_order_placement_duration_seconds.time():
            try:
                await self.workflow.execute(ctx)
            except Exception:
                storefront_orders_placed_total.labels(status="failed").inc()
                raise

        # Committed from here on; a failed read must not look like a failed order
        try:
            async with self.sessions() as db:
                detail = await OrderFormatter.get_order_details(db, ctx.order_id)
        except SQLAlchemyError as e:
            logger.warning("order_detail_unavailable", order_id=ctx.order_id, error=str(e))
            detail = None

        if detail is None:
            storefront_orders_placed_total.labels(status="degraded").inc()
            return OrderPlacedDegraded(id=ctx.order_id)

        storefront_orders_placed_total.labels(status="success").inc()
        return detail

    async def get_order(self, order_id: int) -> OrderDetail:
        async with self.sessions() as db:
            detail = await OrderFormatter.get_order_details(db, order_id)
        if detail is None:
            raise NotFoundError("order", order_id)
        return detail

    async def list_orders(self) -> List[OrderDetail]:
        async with self.sessions() as db:
            return await OrderFormatter.list_orders(db)

    async def update_status(self, order_id: int, new_status: str) -> OrderDetail:
        _check_status(new_status)
        async with self.sessions.begin() as db:
            affected = await OrderRepository.update_status(db, order_id, new_status)
            if affected == 0:
                raise NotFoundError("order", order_id)
        logger.info("order_status_updated", order_id=order_id, status=new_status)
        return await self.get_order(order_id)

    async def update_status_by_label(self, shipment_ids: Sequence[str], new_status: str) -> LabelStatusResult:
        """Carrier tracking sync: move every order whose label is in `shipment_ids` to `new_status`."""
        _check_status(new_status)
        shipment_ids = list(dict.fromkeys(shipment_ids))

        async with self.sessions.begin() as db:
            orders = await OrderRepository.get_orders_by_shipment_ids(db, shipment_ids)
            updated = []
            for order in orders:
                await OrderRepository.update_status(db, order.id, new_status)
                updated.append(order.id)

        known = {order.carrier_shipment_id for order in orders}
        unknown = [sid for sid in shipment_ids if sid not in known]
        if unknown:
            logger.warning("label_status_unknown_shipments", shipment_ids=unknown)
        logger.info("label_status_updated", status=new_status, orders=updated)
        return LabelStatusResult(updated_order_ids=sorted(updated), unknown_shipment_ids=unknown)

    async def generate_label(self, order_id: int) -> OrderDetail:
        """
        Buy the carrier label for an order using the service chosen at placement.

        The carrier is called outside any transaction; the shipment id and
        tracking code are stored afterwards and the order moves to
        'Label Generated'.
        """
        async with self.sessions() as db:
            detail = await OrderFormatter.get_order_details(db, order_id)
            if detail is None:
                raise NotFoundError("order", order_id)
            customer = await CustomerRepository.get_by_id(db, detail.customer.id)

        if detail.carrier_shipment_id:
            raise ConflictError(
                "Label already generated for this order",
                order_id=order_id,
                shipment_id=detail.carrier_shipment_id,
            )
        if detail.shipping.service_id is None or detail.package is None:
            raise ValidationError("Order has no shipping service to buy a label for", order_id=order_id)

        address = detail.delivery_address
        shipment = ShipmentRequest(
            order_id=order_id,
            sender=store_sender(),
            recipient=ShipmentParty(
                name=customer.name,
                phone=customer.phone,
                email=customer.email,
                document=customer.tax_id,
                street=address.street,
                number=address.number,
                complement=address.complement,
                district=address.neighborhood,
                city=address.city,
                state=address.region,
                postal_code=address.postal_code,
            ),
            package=detail.package,
            service_id=detail.shipping.service_id,
            insurance_value=detail.product_subtotal,
            products=[
                DeclaredProduct(name=item.product.name, quantity=item.quantity, unit_price=item.unit_price)
                for item in detail.items
            ],
        )
        confirmation = await self.carrier.create_shipment(shipment)

        async with self.sessions.begin() as db:
            affected = await OrderRepository.set_shipment(
                db,
                order_id,
                confirmation.shipment_id,
                confirmation.tracking_code,
                OrderStatus.LABEL_GENERATED.value,
            )
            if affected == 0:
                # Another request stored a label first
                raise ConflictError("Label already generated for this order", order_id=order_id)

        logger.info("label_generated", order_id=order_id, shipment_id=confirmation.shipment_id)
        return await self.get_order(order_id)
