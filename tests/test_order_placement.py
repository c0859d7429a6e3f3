import asyncio
from decimal import Decimal

import httpx
import pytest
from sqlalchemy import func, select, text

from services.catalog_service.models import Product
from services.order_service.models import Order, OrderLineItem, OrderStatus
from services.order_service.schemas import OrderDetail, OrderItemRequest, OrderPlacedDegraded, PlaceOrderRequest
from services.order_service.service import OrderService
from services.shipping_service.client import ShippingQuoteClient
from services.shipping_service.schemas import ShippingOption
from shared.errors import (
    ConflictError,
    DependencyError,
    InsufficientStockError,
    NotFoundError,
    TransactionError,
    ValidationError,
)


async def stock_of(sessions, product_id):
    async with sessions() as db:
        return (await db.execute(select(Product.stock).where(Product.id == product_id))).scalar_one()


async def count(sessions, model):
    async with sessions() as db:
        return (await db.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.fixture
def orders(sessions, carrier):
    return OrderService(sessions, carrier, origin_postal_code="01001000")


async def test_place_order_decrements_stock_and_records_line(orders, sessions, carrier, make_product, make_customer):
    product = await make_product(stock=5, price="18.50")
    customer, address = await make_customer()

    detail = await orders.place_order(
        PlaceOrderRequest(customer_id=customer.id, items=[OrderItemRequest(product_id=product.id, quantity=2)])
    )

    assert isinstance(detail, OrderDetail)
    assert detail.status == OrderStatus.PENDING.value
    assert detail.delivery_address.id == address.id
    assert len(detail.items) == 1
    assert detail.items[0].quantity == 2
    assert detail.items[0].unit_price == Decimal("18.50")
    assert detail.items[0].subtotal == Decimal("37.00")
    assert await stock_of(sessions, product.id) == 3
    assert await count(sessions, OrderLineItem) == 1


async def test_total_is_subtotal_plus_cheapest_shipping(orders, make_product, make_customer):
    product = await make_product(price="18.50")
    other = await make_product(name="Prato Fundo", price="7.25", stock=10)
    customer, _ = await make_customer()

    detail = await orders.place_order({
        "customer_id": customer.id,
        "items": [
            {"product_id": product.id, "quantity": 2},
            {"product_id": other.id, "quantity": 1},
        ],
    })

    assert detail.product_subtotal == Decimal("44.25")
    assert detail.shipping.price == Decimal("15.90")
    assert detail.shipping.carrier_name == "Correios"
    assert detail.shipping.service_name == "PAC"
    assert detail.shipping.service_id == 1
    assert detail.total == detail.product_subtotal + detail.shipping.price


async def test_quote_uses_unit_count_package_and_delivery_postal_code(orders, carrier, make_product, make_customer):
    product = await make_product(stock=10)
    customer, address = await make_customer(postal_code="01310100")

    await orders.place_order({"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 3}]})

    origin, destination, package = carrier.quotes[0]
    assert origin == "01001000"
    assert destination == address.postal_code
    assert package.weight_kg == pytest.approx(1.0)
    assert package.height_cm == 12
    assert (package.width_cm, package.length_cm) == (25, 25)


async def test_equal_prices_keep_carrier_order(sessions, carrier, make_product, make_customer):
    carrier.options = [
        ShippingOption(carrier_name="Loggi", service_name="Express", service_id=31, price=Decimal("12.00")),
        ShippingOption(carrier_name="Jadlog", service_name=".Com", service_id=4, price=Decimal("12.00")),
    ]
    product = await make_product()
    customer, _ = await make_customer()

    detail = await OrderService(sessions, carrier).place_order(
        {"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}]}
    )

    assert detail.shipping.carrier_name == "Loggi"
    assert detail.shipping.service_id == 31


async def test_explicit_delivery_address_is_used(orders, sessions, make_product, make_customer):
    from services.customer_service.models import Address

    product = await make_product()
    customer, _ = await make_customer()
    async with sessions.begin() as db:
        work = Address(customer_id=customer.id, postal_code="20040002", street="Rua da Assembleia",
                       number="10", city="Rio de Janeiro", region="RJ", kind="Commercial", is_principal=False)
        db.add(work)

    detail = await orders.place_order({
        "customer_id": customer.id,
        "delivery_address_id": work.id,
        "items": [{"product_id": product.id, "quantity": 1}],
    })

    assert detail.delivery_address.id == work.id
    assert detail.delivery_address.city == "Rio de Janeiro"


@pytest.mark.parametrize(
    "payload",
    [
        {"customer_id": 1, "items": []},
        {"customer_id": 1},
        {"items": [{"product_id": 1, "quantity": 1}]},
        {"customer_id": 1, "items": [{"product_id": 1, "quantity": 0}]},
        {"customer_id": 1, "items": [{"product_id": 1, "quantity": -2}]},
        {"customer_id": 1, "items": [{"product_id": 1, "quantity": "2"}]},
        {"customer_id": 1, "items": [{"product_id": "abc", "quantity": 1}]},
    ],
)
async def test_malformed_requests_are_rejected(orders, carrier, payload):
    with pytest.raises(ValidationError):
        await orders.place_order(payload)
    assert carrier.quotes == []


async def test_constructed_request_is_still_checked(orders, make_customer):
    customer, _ = await make_customer()
    request = PlaceOrderRequest.model_construct(
        customer_id=customer.id,
        delivery_address_id=None,
        items=[OrderItemRequest.model_construct(product_id=1, quantity=0)],
    )
    with pytest.raises(ValidationError):
        await orders.place_order(request)


async def test_unknown_customer(orders, make_product):
    product = await make_product()
    with pytest.raises(NotFoundError) as exc:
        await orders.place_order({"customer_id": 999, "items": [{"product_id": product.id, "quantity": 1}]})
    assert exc.value.entity == "customer"


async def test_unknown_product_leaves_nothing_behind(orders, sessions, carrier, make_product, make_customer):
    product = await make_product(stock=5)
    customer, _ = await make_customer()

    with pytest.raises(NotFoundError) as exc:
        await orders.place_order({
            "customer_id": customer.id,
            "items": [{"product_id": product.id, "quantity": 1}, {"product_id": 4242, "quantity": 1}],
        })

    assert exc.value.entity_id == 4242
    assert await stock_of(sessions, product.id) == 5
    assert await count(sessions, Order) == 0
    assert carrier.quotes == []


async def test_address_of_another_customer_is_not_found(orders, make_product, make_customer):
    product = await make_product()
    ana, _ = await make_customer()
    _, bruno_address = await make_customer(name="Bruno Lima", email="bruno.lima@gmail.com", tax_id="11144477735")

    with pytest.raises(NotFoundError) as exc:
        await orders.place_order({
            "customer_id": ana.id,
            "delivery_address_id": bruno_address.id,
            "items": [{"product_id": product.id, "quantity": 1}],
        })
    assert exc.value.entity == "address"


async def test_explicit_address_id_zero_is_not_replaced_by_principal(orders, make_product, make_customer):
    product = await make_product()
    customer, _ = await make_customer()

    with pytest.raises(NotFoundError) as exc:
        await orders.place_order({
            "customer_id": customer.id,
            "delivery_address_id": 0,
            "items": [{"product_id": product.id, "quantity": 1}],
        })
    assert exc.value.entity == "address"
    assert exc.value.entity_id == 0


async def test_customer_without_any_address(orders, make_product, make_customer):
    product = await make_product()
    customer, _ = await make_customer(with_address=False)

    with pytest.raises(ValidationError):
        await orders.place_order({"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}]})


async def test_insufficient_stock(orders, sessions, carrier, make_product, make_customer):
    product = await make_product(stock=5)
    customer, _ = await make_customer()

    with pytest.raises(InsufficientStockError) as exc:
        await orders.place_order({"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 6}]})

    assert exc.value.available == 5
    assert exc.value.requested == 6
    assert exc.value.status_code == 409
    assert await stock_of(sessions, product.id) == 5
    assert carrier.quotes == []


async def test_repeated_product_lines_share_stock(orders, sessions, make_product, make_customer):
    product = await make_product(stock=5)
    customer, _ = await make_customer()

    with pytest.raises(InsufficientStockError) as exc:
        await orders.place_order({
            "customer_id": customer.id,
            "items": [{"product_id": product.id, "quantity": 3}, {"product_id": product.id, "quantity": 3}],
        })
    assert exc.value.requested == 6
    assert await stock_of(sessions, product.id) == 5


async def test_quote_failure_writes_nothing(orders, sessions, carrier, make_product, make_customer):
    carrier.error = DependencyError("carrier service unavailable")
    product = await make_product(stock=5)
    customer, _ = await make_customer()

    with pytest.raises(DependencyError):
        await orders.place_order({"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 2}]})

    assert await stock_of(sessions, product.id) == 5
    assert await count(sessions, Order) == 0
    assert await count(sessions, OrderLineItem) == 0


async def test_unreadable_carrier_reply_is_a_dependency_error(sessions, make_product, make_customer):
    def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    carrier = ShippingQuoteClient(token="t", transport=httpx.MockTransport(handler))
    product = await make_product(stock=5)
    customer, _ = await make_customer()

    with pytest.raises(DependencyError):
        await OrderService(sessions, carrier).place_order(
            {"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}]}
        )
    assert await stock_of(sessions, product.id) == 5
    assert await count(sessions, Order) == 0


async def test_no_shipping_options_is_a_dependency_error(orders, sessions, carrier, make_product, make_customer):
    carrier.options = []
    product = await make_product(stock=5)
    customer, _ = await make_customer()

    with pytest.raises(DependencyError):
        await orders.place_order({"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}]})
    assert await count(sessions, Order) == 0


async def test_stock_taken_after_check_rolls_back_everything(orders, sessions, carrier, make_product, make_customer):
    mug = await make_product(stock=5)
    plate = await make_product(name="Prato Fundo", price="7.25", stock=1)
    customer, _ = await make_customer()

    async def competing_sale():
        async with sessions.begin() as db:
            await db.execute(text("UPDATE products SET stock = 0 WHERE id = :id"), {"id": plate.id})

    carrier.before_quote = competing_sale

    with pytest.raises(ConflictError) as exc:
        await orders.place_order({
            "customer_id": customer.id,
            "items": [{"product_id": mug.id, "quantity": 2}, {"product_id": plate.id, "quantity": 1}],
        })

    assert not isinstance(exc.value, InsufficientStockError)
    assert exc.value.context["product_id"] == plate.id
    # The mug line was already written and decremented inside the transaction
    assert await stock_of(sessions, mug.id) == 5
    assert await stock_of(sessions, plate.id) == 0
    assert await count(sessions, Order) == 0
    assert await count(sessions, OrderLineItem) == 0


async def test_concurrent_orders_cannot_oversell(sessions, carrier, make_product, make_customer):
    product = await make_product(stock=5)
    customer, _ = await make_customer()
    payload = {"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 3}]}

    results = await asyncio.gather(
        OrderService(sessions, carrier).place_order(payload),
        OrderService(sessions, type(carrier)()).place_order(payload),
        return_exceptions=True,
    )

    placed = [r for r in results if isinstance(r, OrderDetail)]
    rejected = [r for r in results if isinstance(r, ConflictError)]
    assert len(placed) == 1
    assert len(rejected) == 1
    assert await stock_of(sessions, product.id) == 2
    assert await count(sessions, Order) == 1
    assert await count(sessions, OrderLineItem) == 1


async def test_storage_failure_is_a_transaction_error(orders, sessions, carrier, make_product, make_customer):
    product = await make_product(stock=5)
    customer, _ = await make_customer()

    async def break_line_items():
        async with sessions.begin() as db:
            await db.execute(text("DROP TABLE order_line_items"))

    carrier.before_quote = break_line_items

    with pytest.raises(TransactionError) as exc:
        await orders.place_order({"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 2}]})

    assert exc.value.__cause__ is not None
    assert exc.value.status_code == 500
    assert await stock_of(sessions, product.id) == 5
    assert await count(sessions, Order) == 0


async def test_failed_read_back_returns_degraded_result(orders, sessions, make_product, make_customer, monkeypatch):
    from sqlalchemy.exc import SQLAlchemyError

    from services.order_service.formatter import OrderFormatter

    product = await make_product(stock=5)
    customer, _ = await make_customer()

    async def unavailable(db, order_id):
        raise SQLAlchemyError("connection reset")

    monkeypatch.setattr(OrderFormatter, "get_order_details", staticmethod(unavailable))

    result = await orders.place_order({"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 2}]})

    assert isinstance(result, OrderPlacedDegraded)
    assert result.detail_available is False
    assert result.id > 0
    # The order itself committed
    assert await stock_of(sessions, product.id) == 3
    assert await count(sessions, Order) == 1
