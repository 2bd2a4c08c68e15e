import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, String, Numeric, Integer, DateTime

from app.database.connection import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    stock_quantity = Column(Integer, nullable=False, default=0)
    # in_stock / low_stock / out_of_stock, derived from stock_quantity
    availability_status = Column(String, nullable=False, default="in_stock", index=True)
    gst_percentage = Column(Numeric(5, 2), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
