import uuid
from datetime import datetime

from sqlalchemy import Column, String, Numeric, Integer, DateTime, Boolean

from app.database.connection import Base


class PromoCode(Base):
    __tablename__ = "promo_codes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String, unique=True, index=True, nullable=False)
    discount_type = Column(String, nullable=False)  # percentage, fixed
    discount_value = Column(Numeric(12, 2), nullable=False)
    max_discount_amount = Column(Numeric(12, 2), nullable=True)
    min_order_amount = Column(Numeric(12, 2), nullable=True)
    max_uses = Column(Integer, nullable=False, default=1)
    used_count = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
