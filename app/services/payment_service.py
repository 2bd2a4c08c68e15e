import base64
import hashlib
import hmac
import logging
import time
from typing import Optional

import requests
from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ConfigurationError, GatewayError, SignatureError, ValidationError
from app.schemas.order import VerifyPaymentRequest
from app.schemas.payment import GatewayOrderRequest, GatewayOrderResponse
from app.services.order_service import place_order
from app.services.replay_guard import PlacedOrder, check_replay

logger = logging.getLogger(__name__)


# ---------- SIGNATURE ----------

def compute_signature(gateway_order_id: str, gateway_payment_id: str, secret: str) -> str:
    """Hex HMAC-SHA256 of "order_id|payment_id", as Razorpay signs it."""
    message = f"{gateway_order_id}|{gateway_payment_id}"
    return hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_signature(
    gateway_order_id: str,
    gateway_payment_id: str,
    signature: str,
    secret: str,
) -> bool:
    expected = compute_signature(gateway_order_id, gateway_payment_id, secret)
    return hmac.compare_digest(expected, signature or "")


# ---------- VERIFY + PLACE ----------

def verify_payment_and_place_order(
    db: Session,
    user_id: str,
    data: VerifyPaymentRequest,
    background_tasks: Optional[BackgroundTasks] = None,
    secret: Optional[str] = None,
) -> PlacedOrder:
    """
    Trust a gateway payment only after its signature checks out, then place the order.
    A payment id that already produced an order returns that order untouched.
    """
    secret = secret if secret is not None else settings.RAZORPAY_KEY_SECRET
    if not secret:
        raise ConfigurationError("Razorpay secret not configured")

    if not (data.razorpay_order_id and data.razorpay_payment_id and data.razorpay_signature):
        raise ValidationError("Missing payment verification details")

    if not data.address_id:
        raise ValidationError("Address ID is required")

    if not verify_signature(
        data.razorpay_order_id,
        data.razorpay_payment_id,
        data.razorpay_signature,
        secret,
    ):
        logger.warning(
            "Invalid Razorpay signature for gateway order %s (user %s)",
            data.razorpay_order_id, user_id,
        )
        raise SignatureError("Payment verification failed - invalid signature")

    duplicate = check_replay(db, data.razorpay_payment_id)
    if duplicate:
        return duplicate

    return place_order(
        db,
        user_id=user_id,
        checkout=data.to_checkout(),
        buyer_gstin=data.buyer_gstin,
        background_tasks=background_tasks,
    )


# ---------- GATEWAY ORDER ----------

def create_gateway_order(data: GatewayOrderRequest) -> GatewayOrderResponse:
    """Open a Razorpay order the storefront's checkout widget pays against."""
    if not settings.RAZORPAY_KEY_ID or not settings.RAZORPAY_KEY_SECRET:
        raise ConfigurationError("Razorpay credentials not configured")

    auth = base64.b64encode(
        f"{settings.RAZORPAY_KEY_ID}:{settings.RAZORPAY_KEY_SECRET}".encode("utf-8")
    ).decode("ascii")

    payload = {
        "amount": data.amount,
        "currency": data.currency,
        "receipt": f"order_{int(time.time() * 1000)}",
        "notes": {
            "productId": data.product_id,
            "productName": data.product_name,
            "quantity": data.quantity,
        },
    }

    try:
        response = requests.post(
            f"{settings.RAZORPAY_API_URL.rstrip('/')}/orders",
            json=payload,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Basic {auth}",
            },
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.error("Razorpay order request failed: %s", e)
        raise GatewayError("Failed to create Razorpay order") from e

    if not response.ok:
        logger.error("Razorpay error: %s %s", response.status_code, response.text)
        raise GatewayError("Failed to create Razorpay order")

    order = response.json()
    return GatewayOrderResponse(
        order_id=order["id"],
        amount=order["amount"],
        currency=order["currency"],
        key_id=settings.RAZORPAY_KEY_ID,
    )
