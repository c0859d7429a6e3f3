from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from .client import get_carrier
from .port import CarrierPort
from .schemas import QuoteRequest, QuoteResponse
from .service import ShippingService

router = APIRouter(tags=["Shipping"])
public_router = APIRouter()


@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "shipping", "status": "running"}


@router.post("/quote", response_model=QuoteResponse)
async def quote_shipping(
    payload: QuoteRequest,
    db: AsyncSession = Depends(get_db),
    carrier: CarrierPort = Depends(get_carrier),
):
    return await ShippingService.quote_for_items(db, payload, carrier)
