from typing import Optional

from pydantic import BaseModel, Field


class GatewayOrderRequest(BaseModel):
    amount: int = Field(gt=0)  # paise
    currency: str = Field(min_length=1)
    product_id: Optional[str] = Field(default=None, alias="productId")
    product_name: Optional[str] = Field(default=None, alias="productName")
    quantity: Optional[int] = None

    class Config:
        populate_by_name = True


class GatewayOrderResponse(BaseModel):
    order_id: str = Field(alias="orderId")
    amount: int
    currency: str
    key_id: str = Field(alias="keyId")

    class Config:
        populate_by_name = True
