"""
Customer registration and address book.

Postal codes are resolved through the address lookup service; the looked-up
street/neighborhood/city/region win over what the caller typed, and the
caller's values are the fallback when the lookup has nothing.

A customer has at most one principal address: whenever an address is written
as principal, the flag is cleared on the customer's other addresses and
`principal_address_id` is repointed in the same transaction.
"""
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.address_service.client import AddressLookupClient
from shared.errors import DependencyError, DuplicateValueError, NotFoundError, ValidationError
from .models import Address, Customer
from .repository import CustomerRepository
from .schemas import AddressInput, AddressResponse, CustomerCreate, CustomerResponse, CustomerUpdate

logger = structlog.get_logger(__name__)


def to_customer_response(customer: Customer, address: Optional[Address]) -> CustomerResponse:
    return CustomerResponse(
        id=customer.id,
        name=customer.name,
        email=customer.email,
        phone=customer.phone,
        tax_id=customer.tax_id,
        created_at=customer.created_at,
        is_active=customer.is_active,
        address=AddressResponse.model_validate(address) if address is not None else None,
    )


async def complete_address(data: AddressInput, client: AddressLookupClient) -> dict:
    """Merge the lookup result with the manual fields into Address column values."""
    try:
        resolved = await client.resolve(data.postal_code)
    except DependencyError:
        # Typed street lets registration go on while the lookup is down
        if not data.street:
            raise
        resolved = None

    if resolved is None and not data.street:
        raise ValidationError(
            "Postal code not found and no street was provided.",
            postal_code=data.postal_code,
        )

    street = (resolved.street if resolved else None) or data.street
    if not street:
        raise ValidationError(
            "Street is required. Provide it or use a postal code that resolves to one.",
            postal_code=data.postal_code,
        )

    return {
        "postal_code": data.postal_code,
        "street": street,
        "number": data.number,
        "complement": data.complement,
        "neighborhood": (resolved.neighborhood if resolved else None) or data.neighborhood,
        "city": (resolved.city if resolved else None) or data.city,
        "region": (resolved.region if resolved else None) or data.region,
        "reference": data.reference,
        "kind": data.kind or "Residential",
        "is_principal": data.is_principal,
    }


class CustomerService:

    @staticmethod
    async def _ensure_unique(db: AsyncSession, email: Optional[str], tax_id: Optional[str], customer_id: int = None):
        if email:
            existing = await CustomerRepository.get_by_email(db, email)
            if existing and existing.id != customer_id:
                raise DuplicateValueError("email", email)
        if tax_id:
            existing = await CustomerRepository.get_by_tax_id(db, tax_id)
            if existing and existing.id != customer_id:
                raise DuplicateValueError("tax_id", tax_id)

    @staticmethod
    async def _commit(db: AsyncSession, email: Optional[str], tax_id: Optional[str], customer_id: int = None):
        """
        Commit, translating a unique violation that slipped past the
        pre-check (concurrent registration) into the field that collided.
        """
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            await CustomerService._ensure_unique(db, email, tax_id, customer_id)
            raise DuplicateValueError("customer") from e

    @staticmethod
    async def _set_principal(db: AsyncSession, customer: Customer, address: Address):
        await CustomerRepository.clear_principal_flags(db, customer.id, address.id)
        customer.principal_address_id = address.id

    @staticmethod
    async def register(db: AsyncSession, data: CustomerCreate, address_client: AddressLookupClient) -> CustomerResponse:
        # External lookup happens before any write
        address_values = await complete_address(data.address, address_client)
        address_values["is_principal"] = True
        await CustomerService._ensure_unique(db, data.email, data.tax_id)

        try:
            customer = await CustomerRepository.add_customer(db, Customer(
                name=data.name,
                email=data.email,
                phone=data.phone or None,
                tax_id=data.tax_id or None,
                is_active=True,
            ))
            address = await CustomerRepository.add_address(
                db, Address(customer_id=customer.id, **address_values)
            )
            # The first address is always the principal one
            customer.principal_address_id = address.id
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            await CustomerService._ensure_unique(db, data.email, data.tax_id)
            raise DuplicateValueError("customer") from e
        except Exception:
            await db.rollback()
            raise

        await CustomerService._commit(db, data.email, data.tax_id)
        logger.info("customer_registered", customer_id=customer.id, address_id=address.id)
        return await CustomerService.get_customer(db, customer.id)

    @staticmethod
    async def get_customer(db: AsyncSession, customer_id: int) -> CustomerResponse:
        row = await CustomerRepository.get_with_principal(db, customer_id)
        if row is None:
            raise NotFoundError("customer", customer_id)
        customer, address = row
        return to_customer_response(customer, address)

    @staticmethod
    async def list_customers(db: AsyncSession) -> list[CustomerResponse]:
        rows = await CustomerRepository.list_with_principal(db)
        return [to_customer_response(customer, address) for customer, address in rows]

    @staticmethod
    async def update_customer(
        db: AsyncSession,
        customer_id: int,
        data: CustomerUpdate,
        address_client: AddressLookupClient,
    ) -> CustomerResponse:
        changes = data.model_dump(exclude_unset=True, exclude={"address"})
        if not changes and data.address is None:
            raise ValidationError("No data to update was provided.")

        customer = await CustomerRepository.get_by_id(db, customer_id)
        if not customer:
            raise NotFoundError("customer", customer_id)

        address_values = None
        if data.address is not None:
            address_values = await complete_address(data.address, address_client)

        await CustomerService._ensure_unique(db, changes.get("email"), changes.get("tax_id"), customer_id)

        try:
            for field, value in changes.items():
                if field in ("name", "email") and not value:
                    continue
                # phone / tax_id may be cleared with null or ""
                setattr(customer, field, value or None)

            if address_values is not None:
                address = None
                if customer.principal_address_id:
                    address = await CustomerRepository.get_customer_address(
                        db, customer_id, customer.principal_address_id
                    )
                if address is None:
                    address = await CustomerRepository.add_address(
                        db, Address(customer_id=customer_id, **address_values)
                    )
                    await CustomerService._set_principal(db, customer, address)
                else:
                    for field, value in address_values.items():
                        setattr(address, field, value)
                    # The row behind principal_address_id stays the principal one
                    address.is_principal = True
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            await CustomerService._ensure_unique(db, changes.get("email"), changes.get("tax_id"), customer_id)
            raise DuplicateValueError("customer") from e
        except Exception:
            await db.rollback()
            raise

        await CustomerService._commit(db, changes.get("email"), changes.get("tax_id"), customer_id)
        logger.info("customer_updated", customer_id=customer_id, fields=sorted(changes))
        return await CustomerService.get_customer(db, customer_id)

    @staticmethod
    async def toggle_active(db: AsyncSession, customer_id: int) -> CustomerResponse:
        customer = await CustomerRepository.get_by_id(db, customer_id)
        if not customer:
            raise NotFoundError("customer", customer_id)

        customer.is_active = not customer.is_active
        await db.commit()
        logger.info("customer_active_toggled", customer_id=customer_id, is_active=customer.is_active)
        return await CustomerService.get_customer(db, customer_id)

    @staticmethod
    async def add_address(
        db: AsyncSession,
        customer_id: int,
        data: AddressInput,
        address_client: AddressLookupClient,
    ) -> Address:
        customer = await CustomerRepository.get_by_id(db, customer_id)
        if not customer:
            raise NotFoundError("customer", customer_id)

        address_values = await complete_address(data, address_client)
        # A customer without a principal address gets this one
        if customer.principal_address_id is None:
            address_values["is_principal"] = True

        try:
            address = await CustomerRepository.add_address(
                db, Address(customer_id=customer_id, **address_values)
            )
            if address.is_principal:
                await CustomerService._set_principal(db, customer, address)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await db.refresh(address)
        logger.info("address_added", customer_id=customer_id, address_id=address.id, principal=address.is_principal)
        return address

    @staticmethod
    async def list_addresses(db: AsyncSession, customer_id: int):
        customer = await CustomerRepository.get_by_id(db, customer_id)
        if not customer:
            raise NotFoundError("customer", customer_id)
        return await CustomerRepository.list_addresses(db, customer_id)
