import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.order import Order

logger = logging.getLogger(__name__)

ALREADY_PROCESSED = "Order already processed"


@dataclass
class PlacedOrder:
    order_id: str
    order_number: str
    duplicate: bool = False

    @property
    def message(self) -> Optional[str]:
        return ALREADY_PROCESSED if self.duplicate else None


def is_cod_payment_id(payment_id: Optional[str]) -> bool:
    return bool(payment_id) and payment_id.upper().startswith("COD")


def find_order_by_payment_id(db: Session, payment_id: str) -> Optional[Order]:
    return db.execute(
        select(Order).where(Order.payment_id == payment_id).limit(1)
    ).scalar_one_or_none()


def check_replay(db: Session, payment_id: Optional[str]) -> Optional[PlacedOrder]:
    """
    Return the order that already consumed this gateway payment, if any.
    COD sentinels and empty ids are never replay candidates.
    """
    if not payment_id or is_cod_payment_id(payment_id):
        return None

    existing = find_order_by_payment_id(db, payment_id)
    if not existing:
        return None

    logger.info(
        "Duplicate payment %s detected, returning order %s",
        payment_id, existing.order_number,
    )
    return PlacedOrder(
        order_id=existing.id,
        order_number=existing.order_number,
        duplicate=True,
    )
