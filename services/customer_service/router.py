from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from services.address_service.client import AddressLookupClient, get_address_client
from shared.config.database import get_db
from .schemas import AddressInput, AddressResponse, CustomerCreate, CustomerResponse, CustomerUpdate
from .service import CustomerService

router = APIRouter(tags=["Customers"])
public_router = APIRouter()  # For any public endpoints (e.g. health check)


@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "customer", "status": "running"}


@router.post(
    "/",
    response_model=CustomerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a customer with their first address",
)
async def register_customer(
    payload: CustomerCreate,
    db: AsyncSession = Depends(get_db),
    address_client: AddressLookupClient = Depends(get_address_client),
):
    return await CustomerService.register(db, payload, address_client)


@router.get("/", response_model=list[CustomerResponse])
async def list_customers(db: AsyncSession = Depends(get_db)):
    return await CustomerService.list_customers(db)


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(customer_id: int, db: AsyncSession = Depends(get_db)):
    return await CustomerService.get_customer(db, customer_id)


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: int,
    payload: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
    address_client: AddressLookupClient = Depends(get_address_client),
):
    return await CustomerService.update_customer(db, customer_id, payload, address_client)


@router.patch("/{customer_id}/active", response_model=CustomerResponse, summary="Activate or deactivate a customer")
async def toggle_customer_active(customer_id: int, db: AsyncSession = Depends(get_db)):
    return await CustomerService.toggle_active(db, customer_id)


@router.post(
    "/{customer_id}/addresses",
    response_model=AddressResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_address(
    customer_id: int,
    payload: AddressInput,
    db: AsyncSession = Depends(get_db),
    address_client: AddressLookupClient = Depends(get_address_client),
):
    return await CustomerService.add_address(db, customer_id, payload, address_client)


@router.get("/{customer_id}/addresses", response_model=list[AddressResponse])
async def list_addresses(customer_id: int, db: AsyncSession = Depends(get_db)):
    return await CustomerService.list_addresses(db, customer_id)
