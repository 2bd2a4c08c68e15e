import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.models.promo_code import PromoCode

logger = logging.getLogger(__name__)


def get_promo_code(db: Session, promo_code_id: Optional[str]) -> Optional[PromoCode]:
    if not promo_code_id:
        return None
    promo = db.execute(
        select(PromoCode).where(PromoCode.id == promo_code_id)
    ).scalar_one_or_none()
    if not promo:
        logger.info("Promo code %s not found, ignoring", promo_code_id)
    return promo


def consume_promo_code(db: Session, promo_code_id: str) -> bool:
    """
    Count one use of a promo code, only while uses remain.
    Returns False when another checkout took the last use first.
    """
    upd = (
        update(PromoCode)
        .where(
            PromoCode.id == promo_code_id,
            PromoCode.is_active.is_(True),
            PromoCode.used_count < PromoCode.max_uses,
        )
        .values(used_count=PromoCode.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    res = db.execute(upd)
    return res.rowcount == 1
