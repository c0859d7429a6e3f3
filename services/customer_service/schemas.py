from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class AddressInput(BaseModel):
    postal_code: str = Field(min_length=8, max_length=9)
    number: str = Field(min_length=1, max_length=20)
    # Filled from the postal code lookup when it resolves; required otherwise
    street: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    complement: Optional[str] = None
    reference: Optional[str] = None
    kind: str = "Residential"
    is_principal: bool = True


class CustomerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = None
    tax_id: Optional[str] = None
    address: AddressInput


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    tax_id: Optional[str] = None
    address: Optional[AddressInput] = None


class AddressResponse(BaseModel):
    id: int
    customer_id: int
    postal_code: str
    street: str
    number: Optional[str]
    complement: Optional[str]
    neighborhood: Optional[str]
    city: Optional[str]
    region: Optional[str]
    reference: Optional[str]
    kind: str
    is_principal: bool

    class Config:
        from_attributes = True


class CustomerResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str]
    tax_id: Optional[str]
    created_at: Optional[datetime]
    is_active: bool
    address: Optional[AddressResponse] = None
