from sqlalchemy import CheckConstraint, Column, Float, Integer, Numeric, String, Text
from shared.config.database import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    # kg / cm, only needed when quoting from physical attributes
    weight = Column(Float, nullable=True)
    height = Column(Float, nullable=True)
    width = Column(Float, nullable=True)
    length = Column(Float, nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=True)
    image = Column(String(512), nullable=True)
