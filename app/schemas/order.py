from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.core.errors import ValidationError
from app.enums.order import PaymentMethod, PaymentStatus


# ---------- Payment descriptor ----------

class PaymentInfo(BaseModel):
    method: PaymentMethod = PaymentMethod.cod
    status: PaymentStatus = PaymentStatus.pending
    payment_id: Optional[str] = Field(default=None, alias="paymentId")

    class Config:
        populate_by_name = True


# ---------- /place-order body (tagged on checkoutMode) ----------

class CheckoutBase(BaseModel):
    address_id: str = Field(alias="addressId", min_length=1)
    promo_code_id: Optional[str] = Field(default=None, alias="promoCodeId")
    discount_amount: Optional[float] = Field(default=None, alias="discountAmount", allow_inf_nan=False)
    payment: PaymentInfo = PaymentInfo()

    class Config:
        populate_by_name = True


class CartCheckout(CheckoutBase):
    checkout_mode: Literal["cart"] = Field(alias="checkoutMode")


class SingleCheckout(CheckoutBase):
    checkout_mode: Literal["single"] = Field(alias="checkoutMode")
    product_id: str = Field(alias="productId", min_length=1)
    quantity: int = Field(ge=1)


PlaceOrderRequest = Annotated[
    Union[CartCheckout, SingleCheckout],
    Field(discriminator="checkout_mode"),
]


# ---------- /verify-payment body ----------

class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str = ""
    razorpay_payment_id: str = ""
    razorpay_signature: str = ""
    address_id: str = Field(default="", alias="addressId")
    checkout_mode: Literal["cart", "single"] = Field(alias="checkoutMode")
    product_id: Optional[str] = Field(default=None, alias="productId")
    quantity: Optional[int] = None
    promo_code_id: Optional[str] = Field(default=None, alias="promoCodeId")
    buyer_gstin: Optional[str] = Field(default=None, alias="buyerGstin")

    class Config:
        populate_by_name = True

    def to_checkout(self) -> Union[CartCheckout, SingleCheckout]:
        """Narrow to the same tagged variant /place-order uses."""
        if not self.address_id:
            raise ValidationError("Address ID is required")
        if self.checkout_mode == "single":
            if not self.product_id:
                raise ValidationError("Product ID is required")
            if not self.quantity or self.quantity < 1:
                raise ValidationError("Quantity must be at least 1")

        common = {
            "address_id": self.address_id,
            "promo_code_id": self.promo_code_id,
            "payment": PaymentInfo(
                method=PaymentMethod.razorpay,
                status=PaymentStatus.paid,
                payment_id=self.razorpay_payment_id,
            ),
        }
        if self.checkout_mode == "cart":
            return CartCheckout(checkout_mode="cart", **common)
        return SingleCheckout(
            checkout_mode="single",
            product_id=self.product_id,
            quantity=self.quantity,
            **common,
        )


# ---------- Responses ----------

class OrderPlacedResponse(BaseModel):
    order_id: str = Field(alias="orderId")
    order_number: str = Field(alias="orderNumber")
    message: Optional[str] = None

    class Config:
        populate_by_name = True


class ErrorResponse(BaseModel):
    error: str


# ---------- Parsing ----------

FIELD_MESSAGES = {
    "addressId": "Address ID is required",
    "productId": "Product ID is required",
    "quantity": "Quantity must be at least 1",
    "discountAmount": "Invalid discount amount",
    "checkoutMode": "Invalid checkout mode",
}

_checkout_adapter = TypeAdapter(PlaceOrderRequest)


def describe_validation_error(exc: PydanticValidationError) -> str:
    """First problem in a request body, phrased for the shopper."""
    errors = exc.errors()
    if not errors:
        return "Invalid request body"

    first = errors[0]
    if first.get("type") in ("union_tag_not_found", "union_tag_invalid"):
        return FIELD_MESSAGES["checkoutMode"]

    for part in reversed(first.get("loc") or ()):
        if isinstance(part, str) and part in FIELD_MESSAGES:
            return FIELD_MESSAGES[part]

    loc = ".".join(str(p) for p in first.get("loc") or ())
    return f"{loc}: {first.get('msg')}" if loc else first.get("msg", "Invalid request body")


def parse_checkout(payload: Any) -> Union[CartCheckout, SingleCheckout]:
    try:
        return _checkout_adapter.validate_python(payload)
    except PydanticValidationError as e:
        raise ValidationError(describe_validation_error(e)) from e


def parse_verify_payment(payload: Any) -> VerifyPaymentRequest:
    try:
        return VerifyPaymentRequest.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(describe_validation_error(e)) from e
