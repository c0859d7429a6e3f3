from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Address, Customer


class CustomerRepository:
    """
    Reads and unit-of-work writes. Write helpers only flush; the service
    decides when the transaction commits.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, customer_id: int) -> Optional[Customer]:
        result = await db.execute(select(Customer).where(Customer.id == customer_id))
        return result.scalars().first()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[Customer]:
        result = await db.execute(select(Customer).where(Customer.email == email))
        return result.scalars().first()

    @staticmethod
    async def get_by_tax_id(db: AsyncSession, tax_id: str) -> Optional[Customer]:
        result = await db.execute(select(Customer).where(Customer.tax_id == tax_id))
        return result.scalars().first()

    @staticmethod
    async def get_with_principal(db: AsyncSession, customer_id: int):
        result = await db.execute(
            select(Customer, Address)
            .outerjoin(Address, Customer.principal_address_id == Address.id)
            .where(Customer.id == customer_id)
        )
        return result.first()

    @staticmethod
    async def list_with_principal(db: AsyncSession):
        result = await db.execute(
            select(Customer, Address)
            .outerjoin(Address, Customer.principal_address_id == Address.id)
            .order_by(Customer.name.asc(), Customer.id.asc())
        )
        return result.all()

    @staticmethod
    async def add_customer(db: AsyncSession, customer: Customer) -> Customer:
        db.add(customer)
        await db.flush()
        return customer

    @staticmethod
    async def add_address(db: AsyncSession, address: Address) -> Address:
        db.add(address)
        await db.flush()
        return address

    @staticmethod
    async def get_customer_address(db: AsyncSession, customer_id: int, address_id: int) -> Optional[Address]:
        result = await db.execute(
            select(Address).where(Address.id == address_id, Address.customer_id == customer_id)
        )
        return result.scalars().first()

    @staticmethod
    async def list_addresses(db: AsyncSession, customer_id: int) -> Sequence[Address]:
        result = await db.execute(
            select(Address)
            .where(Address.customer_id == customer_id)
            .order_by(Address.is_principal.desc(), Address.id.asc())
        )
        return result.scalars().all()

    @staticmethod
    async def clear_principal_flags(db: AsyncSession, customer_id: int, keep_address_id: int):
        await db.execute(
            update(Address)
            .where(Address.customer_id == customer_id, Address.id != keep_address_id)
            .values(is_principal=False)
        )
