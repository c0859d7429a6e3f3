from fastapi import APIRouter, Depends

from shared.errors import NotFoundError, ValidationError
from .client import AddressLookupClient, get_address_client, normalize_postal_code
from .schemas import ResolvedAddress

router = APIRouter(tags=["Addresses"])
public_router = APIRouter()


@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "address", "status": "running"}


@router.get("/lookup/{postal_code}", response_model=ResolvedAddress)
async def lookup_postal_code(
    postal_code: str,
    client: AddressLookupClient = Depends(get_address_client),
):
    if normalize_postal_code(postal_code) is None:
        raise ValidationError("Invalid postal code. It must contain 8 digits.", postal_code=postal_code)

    address = await client.resolve(postal_code)
    if address is None:
        raise NotFoundError("postal code", postal_code)
    return address
