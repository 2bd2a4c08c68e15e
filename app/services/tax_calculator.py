from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.enums.order import DiscountType


DEFAULT_GST_RATE = Decimal("18")
PLATFORM_FEE_GST_RATE = Decimal("0.18")
PAISE = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    return value.quantize(PAISE, rounding=ROUND_HALF_UP)


def is_same_state(buyer_state: Optional[str], seller_state: Optional[str]) -> bool:
    return (buyer_state or "").strip().lower() == (seller_state or "").strip().lower()


# ===================== RESULT TYPES =====================


@dataclass
class LineTax:
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    taxable_value: Decimal
    gst_rate: Decimal
    cgst_rate: Decimal
    sgst_rate: Decimal
    igst_rate: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    total_gst: Decimal

    def as_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "taxable_value": float(self.taxable_value),
            "gst_rate": float(self.gst_rate),
            "cgst_rate": float(self.cgst_rate),
            "sgst_rate": float(self.sgst_rate),
            "igst_rate": float(self.igst_rate),
            "cgst_amount": float(self.cgst_amount),
            "sgst_amount": float(self.sgst_amount),
            "igst_amount": float(self.igst_amount),
            "total_gst": float(self.total_gst),
        }


@dataclass
class OrderTotals:
    lines: List[LineTax] = field(default_factory=list)
    is_igst: bool = False
    subtotal: Decimal = ZERO
    discount_amount: Decimal = ZERO
    promo_applied: bool = False
    promo_rejection: Optional[str] = None
    total_cgst: Decimal = ZERO
    total_sgst: Decimal = ZERO
    total_igst: Decimal = ZERO
    total_gst: Decimal = ZERO
    platform_fee: Decimal = ZERO
    platform_fee_tax: Decimal = ZERO
    grand_total: Decimal = ZERO

    @property
    def subtotal_after_discount(self) -> Decimal:
        return self.subtotal - self.discount_amount

    def gst_breakdown(self) -> Dict[str, Any]:
        """JSON-ready breakdown persisted on the order."""
        return {
            "items": [line.as_dict() for line in self.lines],
            "totals": {
                "cgst": float(self.total_cgst),
                "sgst": float(self.total_sgst),
                "igst": float(self.total_igst),
                "total_gst": float(self.total_gst),
                "platform_fee": float(self.platform_fee),
                "platform_fee_tax": float(self.platform_fee_tax),
                "is_igst": self.is_igst,
            },
        }


# ===================== GST =====================


def calculate_line_tax(product: Any, quantity: int, is_igst: bool) -> LineTax:
    """
    GST for one line.
    Intra-state: half CGST + half SGST. Inter-state: full IGST.
    """
    unit_price = to_decimal(product.price)
    taxable_value = unit_price * quantity

    gst_rate = to_decimal(product.gst_percentage) or DEFAULT_GST_RATE
    gst_amount = round_money(taxable_value * gst_rate / 100)

    if is_igst:
        cgst_rate = sgst_rate = ZERO
        igst_rate = gst_rate
        cgst_amount = sgst_amount = ZERO
        igst_amount = gst_amount
    else:
        cgst_rate = sgst_rate = gst_rate / 2
        igst_rate = ZERO
        # SGST takes the remainder so the halves always add up to the GST
        cgst_amount = round_money(gst_amount / 2)
        sgst_amount = gst_amount - cgst_amount
        igst_amount = ZERO

    return LineTax(
        product_id=str(product.id),
        product_name=product.name,
        quantity=quantity,
        unit_price=unit_price,
        taxable_value=taxable_value,
        gst_rate=gst_rate,
        cgst_rate=cgst_rate,
        sgst_rate=sgst_rate,
        igst_rate=igst_rate,
        cgst_amount=cgst_amount,
        sgst_amount=sgst_amount,
        igst_amount=igst_amount,
        total_gst=gst_amount,
    )


# ===================== PROMO CODES =====================


def promo_rejection_reason(
    promo: Any,
    subtotal: Decimal,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """Return why a promo can't be used for this subtotal, or None if it can."""
    now = now or datetime.utcnow()

    if not promo.is_active:
        return "inactive"
    if promo.expires_at is not None and promo.expires_at < now:
        return "expired"
    if promo.max_uses is not None and (promo.used_count or 0) >= promo.max_uses:
        return "exhausted"
    if promo.min_order_amount and subtotal < to_decimal(promo.min_order_amount):
        return "below_min_order"
    return None


def calculate_promo_discount(promo: Any, subtotal: Decimal) -> Decimal:
    value = to_decimal(promo.discount_value)

    if promo.discount_type == DiscountType.percentage.value:
        discount = subtotal * value / 100
        if promo.max_discount_amount and discount > to_decimal(promo.max_discount_amount):
            discount = to_decimal(promo.max_discount_amount)
        return discount

    return value


def evaluate_promo(
    promo: Any,
    subtotal: Decimal,
    client_discount: Optional[Any] = None,
    now: Optional[datetime] = None,
) -> Tuple[Decimal, Optional[str]]:
    """
    Server-side discount for a promo code: (discount, rejection_reason).

    The client figure is only a ceiling; the promo record is the source of truth.
    A rejected promo yields a zero discount, never an error.
    """
    if promo is None:
        return ZERO, None

    reason = promo_rejection_reason(promo, subtotal, now=now)
    if reason:
        return ZERO, reason

    discount = calculate_promo_discount(promo, subtotal)
    if client_discount is not None:
        ceiling = to_decimal(client_discount)
        # NaN / Infinity carry no ceiling
        if ceiling.is_finite():
            discount = min(discount, ceiling)
    discount = min(discount, subtotal)

    return round_money(max(discount, ZERO)), None


# ===================== PLATFORM FEE =====================


def calculate_platform_fee(
    subtotal_after_discount: Decimal,
    fee_percentage: Any,
    fee_taxable: bool,
) -> Tuple[Decimal, Decimal]:
    platform_fee = round_money(subtotal_after_discount * to_decimal(fee_percentage) / 100)
    platform_fee_tax = round_money(platform_fee * PLATFORM_FEE_GST_RATE) if fee_taxable else ZERO
    return platform_fee, platform_fee_tax


# ===================== ORDER TOTALS =====================


def calculate_order_totals(
    lines: Sequence[Tuple[Any, int]],
    buyer_state: Optional[str],
    seller_state: Optional[str],
    promo: Optional[Any] = None,
    client_discount: Optional[Any] = None,
    platform_fee_percentage: Any = 2,
    platform_fee_taxable: bool = False,
    now: Optional[datetime] = None,
) -> OrderTotals:
    """
    Price an order from (product, quantity) lines.

    Grand total = subtotal - discount + GST + platform fee + platform fee tax.
    Quantities are validated upstream; this function never touches the database.
    """
    is_igst = not is_same_state(buyer_state, seller_state)

    line_taxes = [calculate_line_tax(product, qty, is_igst) for product, qty in lines]
    subtotal = sum((line.taxable_value for line in line_taxes), ZERO)

    discount, rejection = evaluate_promo(promo, subtotal, client_discount, now=now)

    totals = OrderTotals(
        lines=line_taxes,
        is_igst=is_igst,
        subtotal=subtotal,
        discount_amount=discount,
        promo_applied=promo is not None and rejection is None,
        promo_rejection=rejection,
        total_cgst=sum((line.cgst_amount for line in line_taxes), ZERO),
        total_sgst=sum((line.sgst_amount for line in line_taxes), ZERO),
        total_igst=sum((line.igst_amount for line in line_taxes), ZERO),
        total_gst=sum((line.total_gst for line in line_taxes), ZERO),
    )

    totals.platform_fee, totals.platform_fee_tax = calculate_platform_fee(
        totals.subtotal_after_discount,
        platform_fee_percentage,
        platform_fee_taxable,
    )

    totals.grand_total = (
        totals.subtotal_after_discount
        + totals.total_gst
        + totals.platform_fee
        + totals.platform_fee_tax
    )
    return totals
