from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import async_sessionmaker

from services.shipping_service.client import get_carrier
from services.shipping_service.port import CarrierPort
from shared.config.database import get_session_factory
from shared.config.settings import ORDER_RATE_LIMIT
from shared.security import limiter
from .schemas import (
    LabelStatusResult,
    LabelStatusUpdate,
    OrderDetail,
    PlaceOrderRequest,
    StatusUpdate,
)
from .service import OrderService

router = APIRouter(tags=["Orders"])
public_router = APIRouter()


def get_order_service(
    sessions: async_sessionmaker = Depends(get_session_factory),
    carrier: CarrierPort = Depends(get_carrier),
) -> OrderService:
    return OrderService(sessions, carrier)


@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "order", "status": "running"}


@router.post(
    "/",
    response_model=None,  # OrderDetail, or OrderPlacedDegraded when the read-back fails
    status_code=status.HTTP_201_CREATED,
    summary="Place an order",
)
@limiter.limit(ORDER_RATE_LIMIT)
async def place_order(
    request: Request,  # slowapi reads the client key from it
    payload: PlaceOrderRequest,
    orders: OrderService = Depends(get_order_service),
):
    return await orders.place_order(payload)


@router.get("/", response_model=list[OrderDetail], summary="All orders, newest first")
async def list_orders(orders: OrderService = Depends(get_order_service)):
    return await orders.list_orders()


@router.get("/{order_id}", response_model=OrderDetail)
async def get_order(order_id: int, orders: OrderService = Depends(get_order_service)):
    return await orders.get_order(order_id)


@router.put("/{order_id}/status", response_model=OrderDetail)
async def update_order_status(
    order_id: int,
    payload: StatusUpdate,
    orders: OrderService = Depends(get_order_service),
):
    return await orders.update_status(order_id, payload.status)


@router.post("/{order_id}/label", response_model=OrderDetail, summary="Buy the shipping label")
async def generate_label(order_id: int, orders: OrderService = Depends(get_order_service)):
    return await orders.generate_label(order_id)


@router.post("/labels/status", response_model=LabelStatusResult, summary="Sync status from carrier labels")
async def update_status_by_label(
    payload: LabelStatusUpdate,
    orders: OrderService = Depends(get_order_service),
):
    return await orders.update_status_by_label(payload.shipment_ids, payload.status)
