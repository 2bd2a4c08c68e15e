import uuid
from datetime import datetime

from sqlalchemy import Column, String, Numeric, DateTime, Boolean

from app.database.connection import Base


class InvoiceSettings(Base):
    __tablename__ = "invoice_settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    business_name = Column(String, nullable=True)
    business_gstin = Column(String, nullable=True)
    business_state = Column(String, nullable=False, default="Maharashtra")
    default_gst_rate = Column(Numeric(5, 2), nullable=False, default=18)
    platform_fee_percentage = Column(Numeric(5, 2), nullable=False, default=2)
    platform_fee_taxable = Column(Boolean, nullable=False, default=False)
    invoice_prefix = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
