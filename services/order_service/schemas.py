from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, StrictInt

from services.shipping_service.schemas import PackageDimensions
from shared.money import Money


# --- Requests ---

class OrderItemRequest(BaseModel):
    product_id: StrictInt
    quantity: StrictInt = Field(gt=0)


class PlaceOrderRequest(BaseModel):
    customer_id: StrictInt
    delivery_address_id: Optional[StrictInt] = None # defaults to the customer's principal address
    items: List[OrderItemRequest] = Field(min_length=1)


class StatusUpdate(BaseModel):
    # Plain str so an unknown value reaches the service and is rejected there
    status: str


class LabelStatusUpdate(BaseModel):
    shipment_ids: List[str] = Field(min_length=1)
    status: str


# --- Views ---

class ShippingDetail(BaseModel):
    price: Money
    carrier_name: Optional[str]
    service_name: Optional[str]
    service_id: Optional[int]
    estimated_days: Optional[int]


class CustomerSummary(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str]


class DeliveryAddress(BaseModel):
    id: int
    postal_code: str
    street: str
    number: Optional[str]
    complement: Optional[str]
    neighborhood: Optional[str]
    city: Optional[str]
    region: Optional[str]
    reference: Optional[str]


class ProductSnapshot(BaseModel):
    id: int
    name: str
    current_price: Money # live catalog price, may differ from the sale price
    image: Optional[str]


class LineItemDetail(BaseModel):
    id: int
    product: ProductSnapshot
    quantity: int
    unit_price: Money # price at time of sale
    subtotal: Money


class OrderDetail(BaseModel):
    id: int
    created_at: Optional[datetime]
    status: str
    product_subtotal: Money
    total: Money
    carrier_shipment_id: Optional[str]
    tracking_code: Optional[str]
    shipping: ShippingDetail
    package: Optional[PackageDimensions]
    customer: CustomerSummary
    delivery_address: DeliveryAddress
    items: List[LineItemDetail]


class OrderPlacedDegraded(BaseModel):
    """Returned when the order committed but its detail view could not be read back."""
    id: int
    detail_available: bool = False
    message: str = "Order placed, but its details are temporarily unavailable."


class LabelStatusResult(BaseModel):
    updated_order_ids: List[int]
    unknown_shipment_ids: List[str]
