"""
Stockgate — Order admission pipeline

Flow:
  1. Validate the cart
  2. Partition lines by merchant, aggregate quantity per item
  3. Snapshot the ledger rows for every referenced item in one read
  4. Reject the whole submission if any tracked item is short
  5. Persist one Order + its OrderLines per merchant (single transaction)
  6. Decrement stock once with the merged quantities
  7. Return the order ids

Steps 3 and 6 are not covered by one lock: two admissions that read the same
snapshot can both pass step 4. Closing that window would need a per-item row
lock held from the snapshot through the decrement.
"""
import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stockgate.core.config import get_settings
from stockgate.core.errors import ValidationError, InsufficientStock, PersistenceFailure, DecrementFailure
from stockgate.db.stock_ops import run_decrement
from stockgate.models.catalog import CatalogItem
from stockgate.models.order import Order, OrderLine

settings = get_settings()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartLine:
    merchant_id: str
    item_id: str
    quantity: int
    unit_price: Decimal
    options: Any = None


@dataclass
class MerchantPartition:
    merchant_id: str
    lines: list[CartLine] = field(default_factory=list)
    # item_id -> total quantity, in first-appearance order
    quantities: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> Decimal:
        return sum((line.unit_price * line.quantity for line in self.lines), Decimal("0"))


@dataclass
class AdmissionResult:
    order_ids: list[str]
    stock_deducted: bool = True


def validate_cart(customer_ref: str, lines: Sequence[CartLine], max_lines: int | None = None) -> list[CartLine]:
    if not customer_ref or not str(customer_ref).strip():
        raise ValidationError("A customer reference is required.")
    if not lines:
        raise ValidationError("Cart is empty.")
    if max_lines is not None and len(lines) > max_lines:
        raise ValidationError(f"Cart has {len(lines)} lines; at most {max_lines} are accepted.")

    cleaned = []
    for index, line in enumerate(lines):
        if not line.merchant_id or not line.item_id:
            raise ValidationError(f"Line {index}: merchant_id and item_id are required.")
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity <= 0:
            raise ValidationError(f"Line {index}: quantity must be a positive integer.")
        try:
            price = Decimal(str(line.unit_price))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Line {index}: unit_price is not a number.") from exc
        if not price.is_finite() or price < 0:
            raise ValidationError(f"Line {index}: unit_price must be zero or more.")
        cleaned.append(CartLine(line.merchant_id, line.item_id, line.quantity, price, line.options))
    return cleaned


def partition_cart(lines: Sequence[CartLine]) -> list[MerchantPartition]:
    """Group lines by merchant and sum duplicate items, keeping first-seen order."""
    partitions: dict[str, MerchantPartition] = {}
    for line in lines:
        part = partitions.setdefault(line.merchant_id, MerchantPartition(line.merchant_id))
        part.lines.append(line)
        part.quantities[line.item_id] = part.quantities.get(line.item_id, 0) + line.quantity
    return list(partitions.values())


def merged_quantities(partitions: Sequence[MerchantPartition]) -> list[tuple[str, int]]:
    merged: dict[str, int] = {}
    for part in partitions:
        for item_id, quantity in part.quantities.items():
            merged[item_id] = merged.get(item_id, 0) + quantity
    return list(merged.items())


def check_stock(partitions: Sequence[MerchantPartition], snapshot: dict[str, CatalogItem]) -> None:
    """Raise for the first line that references an unknown item or outruns tracked stock."""
    unknown = [
        item_id for part in partitions for item_id in part.quantities if item_id not in snapshot
    ]
    if unknown:
        raise ValidationError(f"Unknown catalog item(s): {', '.join(unknown)}")

    for part in partitions:
        for item_id in part.quantities:
            if snapshot[item_id].merchant_id != part.merchant_id:
                raise ValidationError(
                    f"Item '{item_id}' does not belong to merchant '{part.merchant_id}'."
                )

    for part in partitions:
        for item_id, requested in part.quantities.items():
            item = snapshot[item_id]
            if not item.track_inventory:
                continue
            in_stock = item.stock_quantity or 0
            if requested > in_stock:
                raise InsufficientStock(item.name, requested=requested, in_stock=in_stock)


class OrderAdmissionPipeline:
    """
    Turns a customer's cart into persisted orders and deducts their stock.

    ``ledger_sessions`` opens the session the decrementer runs on; it is kept
    apart from the request session so the decrement can use its own role.
    """

    def __init__(
        self,
        ledger_sessions: async_sessionmaker[AsyncSession],
        timeout_seconds: float | None = None,
        max_lines: int | None = None,
    ):
        self.ledger_sessions = ledger_sessions
        self.timeout_seconds = timeout_seconds or settings.ADMISSION_TIMEOUT_SECONDS
        self.max_lines = max_lines or settings.MAX_CART_LINES

    async def admit(self, db: AsyncSession, customer_ref: str, lines: Sequence[CartLine]) -> AdmissionResult:
        lines = validate_cart(customer_ref, lines, self.max_lines)
        partitions = partition_cart(lines)

        try:
            order_ids = await asyncio.wait_for(
                self._stage_orders(db, customer_ref, partitions), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            await db.rollback()
            logger.error("Admission for %s timed out before commit", customer_ref)
            raise PersistenceFailure()

        # Commit stays outside the timeout: a cancelled COMMIT may still have landed.
        try:
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Committing orders failed for %s", customer_ref)
            raise PersistenceFailure()

        logger.info(
            "Admitted %d order(s) for %s: %s", len(order_ids), customer_ref, ", ".join(order_ids)
        )

        try:
            await run_decrement(self.ledger_sessions, merged_quantities(partitions))
        except DecrementFailure:
            # Orders are committed and immutable; the ledger now lags them.
            logger.error("Stock not deducted for committed orders %s", ", ".join(order_ids))
            return AdmissionResult(order_ids=order_ids, stock_deducted=False)

        return AdmissionResult(order_ids=order_ids)

    async def _snapshot(self, db: AsyncSession, item_ids: Sequence[str]) -> dict[str, CatalogItem]:
        result = await db.execute(select(CatalogItem).where(CatalogItem.id.in_(item_ids)))
        return {item.id: item for item in result.scalars()}

    async def _stage_orders(
        self, db: AsyncSession, customer_ref: str, partitions: Sequence[MerchantPartition]
    ) -> list[str]:
        item_ids = [item_id for item_id, _ in merged_quantities(partitions)]
        try:
            snapshot = await self._snapshot(db, item_ids)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Ledger snapshot failed for %s", customer_ref)
            raise PersistenceFailure()

        try:
            check_stock(partitions, snapshot)
        except InsufficientStock as exc:
            await db.rollback()
            logger.warning(
                "Rejected checkout for %s: %s requested=%s in_stock=%s",
                customer_ref, exc.item_name, exc.requested, exc.in_stock,
            )
            raise
        except ValidationError:
            await db.rollback()
            raise

        try:
            orders = []
            for part in partitions:
                order = Order(
                    merchant_id=part.merchant_id,
                    customer_ref=customer_ref,
                    total_amount=part.total,
                )
                order.lines = [
                    OrderLine(
                        position=position,
                        item_id=line.item_id,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        options=line.options,
                    )
                    for position, line in enumerate(part.lines)
                ]
                db.add(order)
                orders.append(order)
            await db.flush()
            order_ids = [order.id for order in orders]
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Persisting orders failed for %s", customer_ref)
            raise PersistenceFailure()
        return order_ids
