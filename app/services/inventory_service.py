import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InventoryError
from app.enums.order import AvailabilityStatus
from app.models.product import Product

logger = logging.getLogger(__name__)


@dataclass
class RequestedItem:
    product_id: str
    quantity: int


def derive_availability_status(stock_quantity: int) -> str:
    if stock_quantity <= 0:
        return AvailabilityStatus.out_of_stock.value
    if stock_quantity < settings.LOW_STOCK_THRESHOLD:
        return AvailabilityStatus.low_stock.value
    return AvailabilityStatus.in_stock.value


def _availability_after(quantity: int):
    """SQL twin of derive_availability_status, evaluated on the pre-update stock."""
    remaining = Product.stock_quantity - quantity
    return case(
        (remaining <= 0, AvailabilityStatus.out_of_stock.value),
        (remaining < settings.LOW_STOCK_THRESHOLD, AvailabilityStatus.low_stock.value),
        else_=AvailabilityStatus.in_stock.value,
    )


# ---------- LOOKUP ----------

def load_products(db: Session, items: Sequence[RequestedItem]) -> Dict[str, Product]:
    product_ids = list({item.product_id for item in items})
    if not product_ids:
        return {}
    products = db.execute(select(Product).where(Product.id.in_(product_ids))).scalars().all()
    return {p.id: p for p in products}


# ---------- VALIDATION (no writes) ----------

def check_stock(products_by_id: Dict[str, Product], items: Sequence[RequestedItem]) -> None:
    """
    All-or-nothing stock check.
    The first missing / unavailable product aborts the whole order.
    """
    for item in items:
        product = products_by_id.get(item.product_id)
        if not product:
            raise InventoryError(f"Product {item.product_id} not found")
        if product.availability_status == AvailabilityStatus.out_of_stock.value:
            raise InventoryError(f"{product.name} is out of stock")
        if product.stock_quantity < item.quantity:
            raise InventoryError(f"Only {product.stock_quantity} of {product.name} available")


# ---------- RESERVATION ----------

def reserve_stock(db: Session, product: Product, quantity: int) -> None:
    """
    Decrement stock only if enough is left, in a single statement.
    A concurrent checkout that took the last units makes rowcount 0 here.
    Runs inside the caller's transaction; the caller rolls back on failure.
    """
    upd = (
        update(Product)
        .where(
            Product.id == product.id,
            Product.stock_quantity >= quantity,
        )
        .values(
            stock_quantity=Product.stock_quantity - quantity,
            availability_status=_availability_after(quantity),
        )
        .execution_options(synchronize_session=False)
    )

    res = db.execute(upd)
    if res.rowcount != 1:
        fresh = db.execute(
            select(Product.stock_quantity).where(Product.id == product.id)
        ).scalar_one_or_none()
        logger.warning(
            "Stock conflict on product %s: wanted %s, remaining %s",
            product.id, quantity, fresh,
        )
        raise InventoryError(f"Only {int(fresh or 0)} of {product.name} available")


def reserve_all(db: Session, products_by_id: Dict[str, Product], items: Sequence[RequestedItem]) -> None:
    for item in items:
        reserve_stock(db, products_by_id[item.product_id], item.quantity)


def merge_items(items: Sequence[RequestedItem]) -> List[RequestedItem]:
    """Collapse repeated product ids so each product is checked against its total quantity."""
    totals: Dict[str, int] = {}
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return [RequestedItem(product_id=pid, quantity=qty) for pid, qty in totals.items()]
