"""
Stockgate — Order schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Any
from pydantic import BaseModel, Field


class CartLineRequest(BaseModel):
    merchant_id: str = Field(..., min_length=1, examples=["merchant-001"])
    item_id: str = Field(..., min_length=1, examples=["item-001"])
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0)
    options: Any = None


class CheckoutRequest(BaseModel):
    customer_ref: str = Field(..., min_length=1, max_length=128)
    items: list[CartLineRequest] = Field(..., min_length=1)


class CheckoutResponse(BaseModel):
    order_ids: list[str]
    stock_deducted: bool = True


class OrderLineOut(BaseModel):
    item_id: str
    quantity: int
    unit_price: Decimal
    options: Any = None

    model_config = {"from_attributes": True}


class OrderOut(BaseModel):
    id: str
    merchant_id: str
    customer_ref: str
    total_amount: Decimal
    created_at: datetime | None = None
    lines: list[OrderLineOut] = []

    model_config = {"from_attributes": True}
