import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional, Union

from fastapi import BackgroundTasks
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import CheckoutError, ValidationError
from app.enums.order import CheckoutMode, OrderStatus, PaymentMethod, PaymentStatus
from app.models.address import Address
from app.models.cart_item import CartItem
from app.models.invoice_settings import InvoiceSettings
from app.models.order import Order, OrderItem
from app.schemas.order import CartCheckout, SingleCheckout
from app.services.inventory_service import (
    RequestedItem,
    check_stock,
    load_products,
    merge_items,
    reserve_all,
)
from app.services.notification_service import dispatch_post_order_notifications
from app.services.promo_service import consume_promo_code, get_promo_code
from app.services.replay_guard import PlacedOrder, check_replay
from app.services.tax_calculator import OrderTotals, calculate_order_totals

logger = logging.getLogger(__name__)

Checkout = Union[CartCheckout, SingleCheckout]


@dataclass
class PricingSettings:
    seller_state: str
    platform_fee_percentage: Decimal
    platform_fee_taxable: bool


def generate_order_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    return f"ORD-{now:%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


# ---------- LOOKUPS ----------

def get_pricing_settings(db: Session) -> PricingSettings:
    row = db.execute(select(InvoiceSettings).limit(1)).scalar_one_or_none()
    if not row:
        return PricingSettings(
            seller_state=settings.DEFAULT_SELLER_STATE,
            platform_fee_percentage=settings.DEFAULT_PLATFORM_FEE_PERCENTAGE,
            platform_fee_taxable=settings.DEFAULT_PLATFORM_FEE_TAXABLE,
        )
    return PricingSettings(
        seller_state=row.business_state or settings.DEFAULT_SELLER_STATE,
        platform_fee_percentage=(
            row.platform_fee_percentage
            if row.platform_fee_percentage is not None
            else settings.DEFAULT_PLATFORM_FEE_PERCENTAGE
        ),
        platform_fee_taxable=bool(row.platform_fee_taxable),
    )


def get_user_address(db: Session, user_id: str, address_id: str) -> Address:
    if not address_id:
        raise ValidationError("Address ID is required")

    address = db.execute(
        select(Address).where(
            Address.id == address_id,
            Address.user_id == user_id,
        )
    ).scalar_one_or_none()
    if not address:
        raise ValidationError("Address not found")
    return address


def resolve_items(db: Session, user_id: str, checkout: Checkout) -> List[RequestedItem]:
    if checkout.checkout_mode == CheckoutMode.cart.value:
        cart_items = db.execute(
            select(CartItem).where(CartItem.user_id == user_id)
        ).scalars().all()
        items = [RequestedItem(product_id=c.product_id, quantity=c.quantity) for c in cart_items]
        if not items:
            raise ValidationError("Your cart is empty")
        return merge_items(items)

    if not checkout.product_id:
        raise ValidationError("Product ID is required")
    if not checkout.quantity or checkout.quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    return [RequestedItem(product_id=checkout.product_id, quantity=checkout.quantity)]


# ---------- ORDER ASSEMBLY ----------

def _apply_totals(order: Order, totals: OrderTotals, promo_code_id: Optional[str]) -> None:
    order.subtotal = totals.subtotal
    order.tax_amount = totals.total_gst
    order.discount_amount = totals.discount_amount
    order.shipping_amount = Decimal("0")
    order.total_amount = totals.grand_total
    order.gst_breakdown = totals.gst_breakdown()
    order.promo_code_id = promo_code_id if totals.promo_applied else None


def place_order(
    db: Session,
    user_id: str,
    checkout: Checkout,
    buyer_gstin: Optional[str] = None,
    background_tasks: Optional[BackgroundTasks] = None,
    now: Optional[datetime] = None,
) -> PlacedOrder:
    """
    Create an order from the caller's cart or a single "buy now" product.

    Writes happen in one transaction, in this order:
    order header -> order items -> stock decrement -> promo usage -> cart clear.
    Any failure rolls all of them back, so the cart survives a rejected checkout.
    """
    payment = checkout.payment
    is_cod = payment.method == PaymentMethod.cod

    if not is_cod:
        duplicate = check_replay(db, payment.payment_id)
        if duplicate:
            return duplicate

    address = get_user_address(db, user_id, checkout.address_id)
    items = resolve_items(db, user_id, checkout)

    products_by_id = load_products(db, items)
    check_stock(products_by_id, items)

    pricing = get_pricing_settings(db)
    promo = get_promo_code(db, checkout.promo_code_id)
    lines = [(products_by_id[i.product_id], i.quantity) for i in items]

    def price(with_promo: Any) -> OrderTotals:
        return calculate_order_totals(
            lines,
            buyer_state=address.state,
            seller_state=pricing.seller_state,
            promo=with_promo,
            client_discount=getattr(checkout, "discount_amount", None),
            platform_fee_percentage=pricing.platform_fee_percentage,
            platform_fee_taxable=pricing.platform_fee_taxable,
            now=now,
        )

    totals = price(promo)
    if promo is not None and not totals.promo_applied:
        logger.info("Promo code %s dropped: %s", promo.id, totals.promo_rejection)

    order_number = generate_order_number(now)
    if is_cod:
        payment_status = PaymentStatus.pending.value
        payment_id = f"COD-{order_number}"
    else:
        payment_status = payment.status.value
        payment_id = payment.payment_id

    order = Order(
        order_number=order_number,
        user_id=user_id,
        address_id=address.id,
        shipping_address=address.snapshot(),
        status=OrderStatus.pending.value,
        payment_status=payment_status,
        payment_method=payment.method.value,
        payment_id=payment_id,
        buyer_gstin=buyer_gstin or None,
    )
    _apply_totals(order, totals, checkout.promo_code_id)

    try:
        db.add(order)
        db.flush()

        db.add_all(
            [
                OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    product_name=product.name,
                    product_price=product.price,
                    quantity=qty,
                    total_price=Decimal(str(product.price)) * qty,
                )
                for product, qty in lines
            ]
        )
        db.flush()

        reserve_all(db, products_by_id, items)

        if totals.promo_applied and not consume_promo_code(db, promo.id):
            logger.info("Promo code %s used up concurrently, pricing without it", promo.id)
            totals = price(None)
            _apply_totals(order, totals, None)

        if checkout.checkout_mode == CheckoutMode.cart.value:
            db.execute(delete(CartItem).where(CartItem.user_id == user_id))

        db.commit()
    except CheckoutError:
        db.rollback()
        raise
    except IntegrityError:
        db.rollback()
        # Lost a race with a concurrent callback for the same payment
        duplicate = None if is_cod else check_replay(db, payment_id)
        if duplicate:
            return duplicate
        raise

    logger.info(
        "Order placed: %s user=%s total=%s discount=%s",
        order.order_number, user_id, totals.grand_total, totals.discount_amount,
    )

    placed = PlacedOrder(order_id=order.id, order_number=order.order_number)

    if background_tasks is not None:
        background_tasks.add_task(dispatch_post_order_notifications, placed.order_id)

    return placed
