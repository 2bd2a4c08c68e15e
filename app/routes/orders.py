from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from app.database.connection import get_db
from app.dependencies.auth import get_current_user_id
from app.dependencies.request_body import authenticated_json_body
from app.middleware.metrics import count
from app.schemas.order import OrderPlacedResponse, parse_checkout, parse_verify_payment
from app.services.order_service import place_order
from app.services.payment_service import verify_payment_and_place_order
from app.services.replay_guard import PlacedOrder

router = APIRouter(tags=["Orders"])

# Anything but OPTIONS (answered by the CORS middleware) is treated as a POST.
ORDER_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def _to_response(request: Request, placed: PlacedOrder) -> OrderPlacedResponse:
    count(request.app, "duplicate_payments" if placed.duplicate else "orders_placed")
    return OrderPlacedResponse(
        order_id=placed.order_id,
        order_number=placed.order_number,
        message=placed.message,
    )


# ---------- COD / PRE-CONFIRMED PAYMENT ----------

@router.api_route(
    "/place-order",
    methods=ORDER_METHODS,
    response_model=OrderPlacedResponse,
    response_model_exclude_none=True,
)
def place_order_route(
    request: Request,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    payload: Any = Depends(authenticated_json_body),
    db: Session = Depends(get_db),
):
    checkout = parse_checkout(payload)
    placed = place_order(
        db,
        user_id=user_id,
        checkout=checkout,
        background_tasks=background_tasks,
    )
    return _to_response(request, placed)


# ---------- ONLINE GATEWAY PAYMENT ----------

@router.api_route(
    "/verify-payment",
    methods=ORDER_METHODS,
    response_model=OrderPlacedResponse,
    response_model_exclude_none=True,
)
def verify_payment_route(
    request: Request,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    payload: Any = Depends(authenticated_json_body),
    db: Session = Depends(get_db),
):
    data = parse_verify_payment(payload)
    placed = verify_payment_and_place_order(
        db,
        user_id=user_id,
        data=data,
        background_tasks=background_tasks,
    )
    return _to_response(request, placed)
