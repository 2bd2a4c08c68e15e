# app/services/notification_service.py
import logging

import requests

from app.core.config import settings

logger = logging.getLogger(__name__)


def _post_function(name: str, payload: dict) -> requests.Response:
    url = f"{settings.FUNCTIONS_BASE_URL.rstrip('/')}/{name}"
    return requests.post(
        url,
        json=payload,
        headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {settings.SERVICE_ROLE_KEY}",
        },
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )


def dispatch_post_order_notifications(order_id: str) -> None:
    """
    Runs after the order is committed and the response is sent.
    Generates the proforma invoice, then (only if that worked) the confirmation email.
    Never raises: the order already succeeded and both can be re-triggered later.
    """
    if not settings.FUNCTIONS_BASE_URL:
        logger.debug("FUNCTIONS_BASE_URL not set, skipping notifications for %s", order_id)
        return

    try:
        invoice = _post_function(
            "generate-invoice",
            {"orderId": order_id, "invoiceType": "proforma"},
        )
    except requests.RequestException:
        logger.error("Error generating proforma invoice for %s", order_id, exc_info=True)
        return

    if not invoice.ok:
        logger.error(
            "Failed to generate proforma invoice for %s: %s %s",
            order_id, invoice.status_code, invoice.text,
        )
        return

    logger.info("Proforma invoice generated for %s", order_id)

    try:
        email = _post_function(
            "send-order-email",
            {"orderId": order_id, "emailType": "order_placed"},
        )
        if not email.ok:
            logger.error(
                "Order email for %s failed: %s %s",
                order_id, email.status_code, email.text,
            )
    except requests.RequestException:
        logger.error("Error triggering order email for %s", order_id, exc_info=True)
