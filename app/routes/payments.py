from fastapi import APIRouter, Depends

from app.dependencies.auth import get_current_user_id
from app.schemas.payment import GatewayOrderRequest, GatewayOrderResponse
from app.services.payment_service import create_gateway_order

router = APIRouter(tags=["Payments"])


@router.post(
    "/create-razorpay-order",
    response_model=GatewayOrderResponse,
    dependencies=[Depends(get_current_user_id)],
)
def create_razorpay_order_route(data: GatewayOrderRequest):
    return create_gateway_order(data)
