"""
Stockgate — Atomic batch stock decrement

The only code path that lowers stock after a checkout. Runs on the ledger
session factory, which may be bound to a privileged database role.
"""
import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stockgate.core.availability import Tracked, deduct
from stockgate.core.errors import DecrementFailure
from stockgate.models.catalog import CatalogItem, StockDeductionLog

logger = logging.getLogger(__name__)


def merge_entries(entries: Iterable[tuple[str, int]]) -> dict[str, int]:
    """Sum quantities per item id, dropping non-positive quantities."""
    merged: dict[str, int] = {}
    for item_id, quantity in entries:
        if quantity is None or quantity <= 0:
            continue
        merged[item_id] = merged.get(item_id, 0) + int(quantity)
    return merged


async def decrement_stock(db: AsyncSession, entries: Iterable[tuple[str, int]]) -> list[CatalogItem]:
    """
    Deduct a batch of ``(item_id, quantity)`` pairs in one transaction.

      - tracked items:   stock = max(stock - quantity, 0), availability re-derived
      - untracked items, unknown ids, quantity <= 0: skipped

    Rows are locked in id order so two batches touching the same items cannot
    deadlock. Any failure rolls the whole batch back and raises DecrementFailure.
    Returns the rows that were changed.
    """
    merged = merge_entries(entries)
    if not merged:
        return []

    try:
        result = await db.execute(
            select(CatalogItem)
            .where(CatalogItem.id.in_(sorted(merged)))
            .order_by(CatalogItem.id)
            .with_for_update()
        )
        touched = []
        for item in result.scalars():
            state = item.stock
            if not isinstance(state, Tracked):
                continue
            requested = merged[item.id]
            new_state = deduct(state, requested)
            item.apply_state(new_state)
            db.add(StockDeductionLog(
                item_id=item.id,
                quantity_requested=requested,
                quantity_deducted=state.quantity - new_state.quantity,
                stock_after=new_state.quantity,
            ))
            touched.append(item)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Batch decrement rolled back (%d entries)", len(merged))
        raise DecrementFailure("Stock decrement failed; no deduction was applied.") from exc

    for item in touched:
        logger.info(
            "Stock decremented for %s: remaining=%d available=%s",
            item.id, item.stock_quantity, item.available,
        )
    return touched


async def run_decrement(
    sessions: async_sessionmaker[AsyncSession], entries: Iterable[tuple[str, int]]
) -> list[CatalogItem]:
    """Run ``decrement_stock`` on a fresh ledger session."""
    async with sessions() as db:
        return await decrement_stock(db, entries)
