from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from shared.config.database import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(32), nullable=True)
    tax_id = Column(String(32), unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    is_active = Column(Boolean, default=True, nullable=False)
    # customers <-> addresses reference each other; created after both tables
    principal_address_id = Column(
        Integer,
        ForeignKey("addresses.id", use_alter=True, name="fk_customers_principal_address"),
        nullable=True,
    )


class Address(Base):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    postal_code = Column(String(9), nullable=False)
    street = Column(String(255), nullable=False)
    number = Column(String(20), nullable=True)
    complement = Column(String(255), nullable=True)
    neighborhood = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    region = Column(String(64), nullable=True)
    reference = Column(String(255), nullable=True)
    kind = Column(String(32), nullable=False, default="Residential")
    is_principal = Column(Boolean, nullable=False, default=False)
