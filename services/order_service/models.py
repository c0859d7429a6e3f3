import enum

from sqlalchemy import CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func

from shared.config.database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PAID = "Paid"
    CANCELLED = "Cancelled"
    AWAITING_LABEL = "Awaiting Label"
    LABEL_GENERATED = "Label Generated"
    PREPARING = "Preparing"
    IN_TRANSIT = "In Transit"
    DELIVERED = "Delivered"
    LOST = "Lost"
    RETURNED = "Returned"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    delivery_address_id = Column(Integer, ForeignKey("addresses.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    status = Column(String(32), nullable=False, default=OrderStatus.PENDING.value)

    # total = product_subtotal + shipping_price, fixed at placement
    product_subtotal = Column(Numeric(10, 2), nullable=False)
    shipping_price = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)

    # Chosen carrier option
    carrier_name = Column(String(128), nullable=True)
    shipping_service = Column(String(128), nullable=True)
    shipping_service_id = Column(Integer, nullable=True)
    shipping_days = Column(Integer, nullable=True)

    # Package sent to the carrier for the quote (kg / cm)
    package_weight = Column(Float, nullable=True)
    package_height = Column(Float, nullable=True)
    package_width = Column(Float, nullable=True)
    package_length = Column(Float, nullable=True)

    # Filled in when the label is bought
    carrier_shipment_id = Column(String(64), nullable=True, index=True)
    tracking_code = Column(String(64), nullable=True)


class OrderLineItem(Base):
    __tablename__ = "order_line_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_line_items_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False) # catalog price at time of sale
