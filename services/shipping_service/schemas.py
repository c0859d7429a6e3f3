from typing import List, Optional

from pydantic import BaseModel, Field

from shared.money import Money


class PackageDimensions(BaseModel):
    weight_kg: float
    height_cm: float
    width_cm: float
    length_cm: float

    def as_volume(self) -> dict:
        """Carrier API volume shape."""
        return {
            "weight": self.weight_kg,
            "height": self.height_cm,
            "width": self.width_cm,
            "length": self.length_cm,
        }


class ShippingOption(BaseModel):
    carrier_name: str
    service_name: str
    service_id: int
    price: Money
    estimated_days: Optional[int] = None


class QuoteItem(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)


class QuoteRequest(BaseModel):
    destination_postal_code: str = Field(min_length=8, max_length=9)
    items: List[QuoteItem] = Field(min_length=1)


class QuoteResponse(BaseModel):
    package: PackageDimensions
    options: List[ShippingOption]


class ShipmentParty(BaseModel):
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    document: Optional[str] = None
    street: Optional[str] = None
    number: Optional[str] = None
    complement: Optional[str] = None
    district: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: str


class DeclaredProduct(BaseModel):
    name: str
    quantity: int
    unit_price: Money


class ShipmentRequest(BaseModel):
    """Everything the carrier needs to issue a label for one order."""
    order_id: int
    sender: ShipmentParty
    recipient: ShipmentParty
    package: PackageDimensions
    service_id: int
    insurance_value: Money
    products: List[DeclaredProduct]


class ShipmentConfirmation(BaseModel):
    shipment_id: str
    tracking_code: Optional[str] = None
    price: Optional[Money] = None
