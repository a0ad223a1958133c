"""
Stockgate — Orders API

Flow:
  1. Cooldown check per customer (Redis)
  2. Admission pipeline: stock pre-check, persist orders, batch decrement
  3. Return the created order ids
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stockgate.api.deps import get_pipeline, get_rate_guard
from stockgate.core.errors import (
    GENERIC_RETRY_MESSAGE,
    ValidationError,
    InsufficientStock,
    RateLimited,
    PersistenceFailure,
)
from stockgate.core.rate_guard import CheckoutRateGuard
from stockgate.db.admission import CartLine, OrderAdmissionPipeline
from stockgate.db.database import get_db
from stockgate.models.order import Order
from stockgate.schemas.order import CheckoutRequest, CheckoutResponse, OrderOut

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def create_orders(
    payload: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
    pipeline: OrderAdmissionPipeline = Depends(get_pipeline),
    guard: CheckoutRateGuard = Depends(get_rate_guard),
):
    """
    Admit a cart. Produces one order per merchant in the cart.
    Insufficient stock anywhere rejects the whole cart.
    """
    lines = [
        CartLine(
            merchant_id=i.merchant_id,
            item_id=i.item_id,
            quantity=i.quantity,
            unit_price=i.unit_price,
            options=i.options,
        )
        for i in payload.items
    ]

    try:
        result = await guard.submit(pipeline, db, payload.customer_ref, lines)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except InsufficientStock as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(e), "item_name": e.item_name},
        )
    except RateLimited as e:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=GENERIC_RETRY_MESSAGE,
            headers={"Retry-After": str(e.retry_after)},
        )
    except PersistenceFailure:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=GENERIC_RETRY_MESSAGE)

    return CheckoutResponse(order_ids=result.order_ids, stock_deducted=result.stock_deducted)


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(order_id: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Order).where(Order.id == order_id))
    order = result.scalar_one_or_none()
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found.")
    return order
