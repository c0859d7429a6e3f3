import os

# Must be set before any app module builds its engine or tracer
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OTLP_ENDPOINT"] = ""

from decimal import Decimal
from typing import List, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from services.address_service.schemas import ResolvedAddress
from services.catalog_service.models import Product
from services.customer_service.models import Address, Customer
from services.order_service import models as order_models  # noqa: F401
from services.shipping_service.port import CarrierPort
from services.shipping_service.schemas import ShipmentConfirmation, ShippingOption
from shared.config.database import Base
from shared.security import limiter


class FakeCarrier(CarrierPort):
    """In-memory carrier. `before_quote` lets a test act between the stock check and the write."""

    def __init__(self, options: Optional[List[ShippingOption]] = None):
        self.options = options if options is not None else [
            ShippingOption(carrier_name="Jadlog", service_name=".Package", service_id=3,
                           price=Decimal("22.40"), estimated_days=6),
            ShippingOption(carrier_name="Correios", service_name="PAC", service_id=1,
                           price=Decimal("15.90"), estimated_days=8),
            ShippingOption(carrier_name="Correios", service_name="SEDEX", service_id=2,
                           price=Decimal("31.75"), estimated_days=2),
        ]
        self.error = None
        self.before_quote = None
        self.quotes = []
        self.shipments = []

    async def quote(self, origin_postal_code, destination_postal_code, package):
        self.quotes.append((origin_postal_code, destination_postal_code, package))
        if self.before_quote is not None:
            await self.before_quote()
        if self.error is not None:
            raise self.error
        return list(self.options)

    async def create_shipment(self, shipment):
        self.shipments.append(shipment)
        return ShipmentConfirmation(
            shipment_id=f"shp-{shipment.order_id}",
            tracking_code=f"ME{shipment.order_id:08d}BR",
            price=Decimal("15.90"),
        )


class FakeAddressClient:
    def __init__(self, known=None):
        self.known = known if known is not None else {
            "01310100": ResolvedAddress(
                postal_code="01310-100",
                street="Avenida Paulista",
                neighborhood="Bela Vista",
                city="São Paulo",
                region="SP",
            ),
        }
        self.error = None
        self.calls = []

    async def resolve(self, postal_code):
        self.calls.append(postal_code)
        if self.error is not None:
            raise self.error
        return self.known.get(postal_code.replace("-", ""))


@pytest.fixture
async def sessions(tmp_path):
    # File-backed so concurrent sessions get their own connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def carrier():
    return FakeCarrier()


@pytest.fixture
def address_client():
    return FakeAddressClient()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def make_product(sessions):
    async def _make(name="Caneca Azul", price="18.50", stock=5, **extra):
        async with sessions.begin() as db:
            product = Product(name=name, price=Decimal(price), stock=stock, **extra)
            db.add(product)
        return product
    return _make


@pytest.fixture
def make_customer(sessions):
    async def _make(name="Ana Souza", email="ana.souza@gmail.com", tax_id="39053344705",
                    postal_code="01310100", with_address=True):
        async with sessions.begin() as db:
            customer = Customer(name=name, email=email, phone="11987654321", tax_id=tax_id, is_active=True)
            db.add(customer)
            await db.flush()
            address = None
            if with_address:
                address = Address(
                    customer_id=customer.id,
                    postal_code=postal_code,
                    street="Avenida Paulista",
                    number="1578",
                    neighborhood="Bela Vista",
                    city="São Paulo",
                    region="SP",
                    kind="Residential",
                    is_principal=True,
                )
                db.add(address)
                await db.flush()
                customer.principal_address_id = address.id
        return customer, address
    return _make


@pytest.fixture
def asgi_client():
    """Factory: an httpx client bound to one of the service apps."""
    def _client(app):
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
    return _client
