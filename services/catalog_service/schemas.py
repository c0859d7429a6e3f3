from typing import Optional

from pydantic import BaseModel, Field

from shared.money import Money


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    price: Money = Field(ge=0)
    stock: int = Field(ge=0)
    weight: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
    width: Optional[float] = Field(default=None, gt=0)
    length: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = None
    image: Optional[str] = None # reference to an already-uploaded file


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    price: Optional[Money] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
    width: Optional[float] = Field(default=None, gt=0)
    length: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = None
    image: Optional[str] = None


class ProductResponse(BaseModel):
    id: int
    name: str
    price: Money
    stock: int
    weight: Optional[float]
    height: Optional[float]
    width: Optional[float]
    length: Optional[float]
    description: Optional[str]
    image: Optional[str]

    class Config:
        from_attributes = True
