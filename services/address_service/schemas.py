from typing import Optional

from pydantic import BaseModel


class ResolvedAddress(BaseModel):
    postal_code: str
    street: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
