"""
HTTP adapter for the carrier-aggregation API (Melhor Envio compatible).

Quotes:  POST {base}/me/shipment/calculate
Labels:  POST {base}/me/cart
"""
from typing import List, Optional

import httpx
import structlog

from shared.config.settings import (
    CARRIER_API_TOKEN,
    CARRIER_API_URL,
    CARRIER_CONTACT_EMAIL,
    HTTP_TIMEOUT_SECONDS,
    STORE_NAME,
)
from shared.errors import DependencyError
from shared.money import to_money
from shared.observability import storefront_shipping_quote_failures_total
from .port import CarrierPort
from .schemas import PackageDimensions, ShipmentConfirmation, ShipmentRequest, ShippingOption

logger = structlog.get_logger(__name__)


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        if body.get("message"):
            return str(body["message"])
        errors = body.get("errors")
        if isinstance(errors, dict):
            flat = [str(msg) for msgs in errors.values() for msg in (msgs if isinstance(msgs, list) else [msgs])]
            return ", ".join(flat)
    return str(body)[:200]


def parse_option(service) -> Optional[ShippingOption]:
    """
    One calculate entry -> ShippingOption. Entries the carrier flagged with an
    error, or that lack a usable id or price, are dropped.
    """
    if not isinstance(service, dict):
        return None
    if service.get("error") or service.get("price") in (None, ""):
        return None
    try:
        service_id = int(service["id"])
        price = to_money(service["price"])
    except (KeyError, TypeError, ValueError, ArithmeticError):
        logger.info("shipping_option_unusable", entry=str(service)[:200])
        return None

    company = service.get("company")
    delivery_time = service.get("delivery_time")
    try:
        estimated_days = int(delivery_time) if delivery_time not in (None, "") else None
    except (TypeError, ValueError):
        estimated_days = None
    return ShippingOption(
        carrier_name=company.get("name", "unknown") if isinstance(company, dict) else "unknown",
        service_name=str(service.get("name", "")),
        service_id=service_id,
        price=price,
        estimated_days=estimated_days,
    )


class ShippingQuoteClient(CarrierPort):

    def __init__(
        self,
        base_url: str = CARRIER_API_URL,
        token: str = CARRIER_API_TOKEN,
        contact_email: str = CARRIER_CONTACT_EMAIL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.contact_email = contact_email
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token}",
            "User-Agent": f"{STORE_NAME}Backend ({self.contact_email})",
        }

    async def _post(self, path: str, payload):
        """POST and decode the JSON reply. Every upstream failure is a DependencyError."""
        if not self.token:
            raise DependencyError("carrier API token is not configured")
        try:
            async with httpx.AsyncClient(
                headers=self._headers(), timeout=self.timeout, transport=self.transport
            ) as client:
                resp = await client.post(f"{self.base_url}{path}", json=payload)
        except httpx.HTTPError as e:
            logger.warning("carrier_unavailable", path=path, error=str(e))
            raise DependencyError("carrier service unavailable") from e

        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.warning("carrier_request_failed", path=path, status=resp.status_code, detail=message)
            raise DependencyError(f"carrier request failed: {message}", upstream_status=resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            logger.warning("carrier_reply_unreadable", path=path, body=resp.text[:200])
            raise DependencyError("carrier returned an unreadable reply") from e

    async def quote(
        self,
        origin_postal_code: str,
        destination_postal_code: str,
        package: PackageDimensions,
    ) -> List[ShippingOption]:
        payload = {
            "from": {"postal_code": origin_postal_code},
            "to": {"postal_code": destination_postal_code},
            "volumes": [package.as_volume()],
            "options": {"receipt": False, "own_hand": False},
        }
        try:
            body = await self._post("/me/shipment/calculate", payload)
        except DependencyError:
            storefront_shipping_quote_failures_total.inc()
            raise

        services = body if isinstance(body, list) else [body]
        options = [opt for opt in (parse_option(s) for s in services) if opt is not None]
        logger.info(
            "shipping_quoted",
            destination=destination_postal_code,
            offered=len(services),
            usable=len(options),
        )
        return options

    async def create_shipment(self, shipment: ShipmentRequest) -> ShipmentConfirmation:
        def party(p):
            return {
                "name": p.name,
                "phone": p.phone,
                "email": p.email,
                "document": p.document,
                "address": p.street,
                "number": p.number,
                "complement": p.complement,
                "district": p.district,
                "city": p.city,
                "state_abbr": p.state,
                "country_id": "BR",
                "postal_code": p.postal_code,
            }

        payload = {
            "from": party(shipment.sender),
            "to": party(shipment.recipient),
            "service": shipment.service_id,
            "volumes": [shipment.package.as_volume()],
            "options": {
                "insurance_value": float(shipment.insurance_value),
                "receipt": False,
                "own_hand": False,
                "reverse": False,
                "non_commercial": True,
                "platform": STORE_NAME,
                "tags": [{"tag": f"order-{shipment.order_id}"}],
            },
            "products": [
                {
                    "name": p.name,
                    "quantity": str(p.quantity),
                    "unitary_value": str(p.unit_price),
                }
                for p in shipment.products
            ],
        }
        body = await self._post("/me/cart", payload)
        if not isinstance(body, dict) or not body.get("id"):
            raise DependencyError("carrier did not return a shipment id")

        # Label price is informational only
        try:
            price = to_money(body["price"]) if body.get("price") not in (None, "") else None
        except (TypeError, ValueError, ArithmeticError):
            price = None

        logger.info("shipment_created", order_id=shipment.order_id, shipment_id=body["id"])
        return ShipmentConfirmation(
            shipment_id=str(body["id"]),
            tracking_code=body.get("tracking") or body.get("protocol"),
            price=price,
        )


def get_carrier() -> CarrierPort:
    return ShippingQuoteClient()
