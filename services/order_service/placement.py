"""
Order placement workflow.

Placement runs as an ordered list of named steps sharing one PlacementContext:

    validate -> resolve_customer -> resolve_address -> resolve_products
             -> quote_shipping -> persist

Only `persist` writes. It inserts the order and its line items and decrements
stock inside a single transaction, so nothing needs compensating when an
earlier step fails, and a failure inside `persist` rolls everything back.
"""
import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional

import structlog
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.ext.asyncio import async_sessionmaker

from services.catalog_service.models import Product
from services.catalog_service.repository import ProductRepository
from services.customer_service.models import Address, Customer
from services.customer_service.repository import CustomerRepository
from services.shipping_service.package import estimate_package
from services.shipping_service.port import CarrierPort
from services.shipping_service.schemas import PackageDimensions, ShippingOption
from services.shipping_service.service import cheapest_option
from shared.errors import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    TransactionError,
    ValidationError,
)
from shared.money import to_money
from shared.observability import (
    storefront_placement_step_failures_total,
    storefront_shipping_quote_failures_total,
    storefront_stock_conflicts_total,
)
from .models import Order, OrderLineItem, OrderStatus
from .repository import OrderRepository
from .schemas import PlaceOrderRequest

logger = structlog.get_logger(__name__)


@dataclass
class PricedLine:
    product_id: int
    name: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass
class PlacementContext:
    payload: Any
    sessions: async_sessionmaker
    carrier: CarrierPort
    origin_postal_code: str

    request: Optional[PlaceOrderRequest] = None
    customer: Optional[Customer] = None
    address: Optional[Address] = None
    lines: List[PricedLine] = field(default_factory=list)
    package: Optional[PackageDimensions] = None
    shipping: Optional[ShippingOption] = None
    order_id: Optional[int] = None

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def product_subtotal(self) -> Decimal:
        return to_money(sum((line.line_total for line in self.lines), Decimal("0")))


class PlacementStep:
    def __init__(self, name, action):
        self.name = name
        self.action = action


class PlacementWorkflow:
    def __init__(self):
        self.steps = []

    def add_step(self, name: str, action):
        self.steps.append(PlacementStep(name, action))
        return self

    async def execute(self, ctx: PlacementContext) -> PlacementContext:
        """Runs the steps in order. The first failure aborts the placement and is re-raised."""
        for step in self.steps:
            try:
                await step.action(ctx)
            except Exception as e:
                logger.warning(
                    "placement_step_failed",
                    step=step.name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                storefront_placement_step_failures_total.labels(step=step.name).inc()
                raise
        return ctx


# --- STEPS ---

def _check_request(request: PlaceOrderRequest):
    # Models built with model_construct() skip pydantic, so check the essentials again
    if isinstance(request.customer_id, bool) or not isinstance(request.customer_id, int):
        raise ValidationError("customer_id is required and must be an integer")
    if not request.items:
        raise ValidationError("an order needs at least one item")
    for position, item in enumerate(request.items):
        if isinstance(item.product_id, bool) or not isinstance(item.product_id, int):
            raise ValidationError("product_id must be an integer", item=position)
        if isinstance(item.quantity, bool) or not isinstance(item.quantity, int) or item.quantity < 1:
            raise ValidationError("quantity must be a positive integer", item=position)


async def validate_request(ctx: PlacementContext):
    payload = ctx.payload
    if isinstance(payload, PlaceOrderRequest):
        request = payload
    else:
        try:
            request = PlaceOrderRequest.model_validate(payload)
        except SchemaValidationError as e:
            first = e.errors()[0]
            where = ".".join(str(p) for p in first["loc"])
            raise ValidationError(f"{where}: {first['msg']}" if where else first["msg"]) from e
    _check_request(request)
    ctx.request = request


async def resolve_customer(ctx: PlacementContext):
    async with ctx.sessions() as db:
        customer = await CustomerRepository.get_by_id(db, ctx.request.customer_id)
    if customer is None:
        raise NotFoundError("customer", ctx.request.customer_id)
    ctx.customer = customer


async def resolve_address(ctx: PlacementContext):
    address_id = ctx.request.delivery_address_id
    if address_id is None:
        address_id = ctx.customer.principal_address_id
    if address_id is None:
        raise ValidationError(
            "No delivery address given and the customer has no principal address.",
            customer_id=ctx.customer.id,
        )
    async with ctx.sessions() as db:
        address = await CustomerRepository.get_customer_address(db, ctx.customer.id, address_id)
    if address is None:
        raise NotFoundError("address", address_id)
    ctx.address = address


async def _load_product(ctx: PlacementContext, product_id: int) -> Optional[Product]:
    async with ctx.sessions() as db:
        return await ProductRepository.get_product_by_id(db, product_id)


async def resolve_products(ctx: PlacementContext):
    """Independent lookups run concurrently; the stock check is advisory, `persist` enforces it."""
    items = ctx.request.items
    products = await asyncio.gather(*(_load_product(ctx, item.product_id) for item in items))

    requested = {}
    lines = []
    for item, product in zip(items, products):
        if product is None:
            raise NotFoundError("product", item.product_id)
        # Repeated product ids draw on the same stock
        requested[product.id] = requested.get(product.id, 0) + item.quantity
        if requested[product.id] > product.stock:
            storefront_stock_conflicts_total.labels(phase="check").inc()
            raise InsufficientStockError(product.id, product.stock, requested[product.id])
        lines.append(
            PricedLine(
                product_id=product.id,
                name=product.name,
                quantity=item.quantity,
                unit_price=to_money(product.price),
            )
        )
    ctx.lines = lines


async def quote_shipping(ctx: PlacementContext):
    ctx.package = estimate_package(ctx.total_quantity)
    options = await ctx.carrier.quote(ctx.origin_postal_code, ctx.address.postal_code, ctx.package)
    if not options:
        storefront_shipping_quote_failures_total.inc()
    ctx.shipping = cheapest_option(options)


async def persist(ctx: PlacementContext):
    shipping_price = to_money(ctx.shipping.price)
    subtotal = ctx.product_subtotal
    try:
        async with ctx.sessions.begin() as db:
            order = Order(
                customer_id=ctx.customer.id,
                delivery_address_id=ctx.address.id,
                status=OrderStatus.PENDING.value,
                product_subtotal=subtotal,
                shipping_price=shipping_price,
                total=subtotal + shipping_price,
                carrier_name=ctx.shipping.carrier_name,
                shipping_service=ctx.shipping.service_name,
                shipping_service_id=ctx.shipping.service_id,
                shipping_days=ctx.shipping.estimated_days,
                package_weight=ctx.package.weight_kg,
                package_height=ctx.package.height_cm,
                package_width=ctx.package.width_cm,
                package_length=ctx.package.length_cm,
            )
            await OrderRepository.add_order(db, order)

            for line in ctx.lines:
                await OrderRepository.add_line_item(
                    db,
                    OrderLineItem(
                        order_id=order.id,
                        product_id=line.product_id,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                    ),
                )
                affected = await ProductRepository.decrement_stock(db, line.product_id, line.quantity)
                if affected == 0:
                    # Someone else took the stock after resolve_products looked
                    storefront_stock_conflicts_total.labels(phase="decrement").inc()
                    raise ConflictError(
                        "insufficient stock",
                        product_id=line.product_id,
                        requested=line.quantity,
                    )
            order_id = order.id
    except ConflictError:
        raise
    except Exception as e:
        raise TransactionError("Order could not be saved; nothing was written.") from e

    ctx.order_id = order_id
    logger.info(
        "order_persisted",
        order_id=order_id,
        customer_id=ctx.customer.id,
        lines=len(ctx.lines),
        total=str(subtotal + shipping_price),
    )


# --- BUILDER FACTORY ---

def build_placement_workflow() -> PlacementWorkflow:
    workflow = PlacementWorkflow()
    workflow.add_step("validate", validate_request)
    workflow.add_step("resolve_customer", resolve_customer)
    workflow.add_step("resolve_address", resolve_address)
    workflow.add_step("resolve_products", resolve_products)
    workflow.add_step("quote_shipping", quote_shipping)
    workflow.add_step("persist", persist)
    return workflow
