"""
Stockgate — Stock ledger operations

Admin-facing mutators for the inventory fields of a catalog item. Each one
locks the row, writes the new stock state through ``CatalogItem.apply_state``
(which re-derives ``available``) and commits in a single transaction.
"""
import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stockgate.core.availability import Tracked, Untracked, StockStatus, classify, clamp
from stockgate.core.errors import ItemNotFound, TrackingDisabled, AvailabilityIsDerived
from stockgate.models.catalog import CatalogItem

logger = logging.getLogger(__name__)


async def get_item(db: AsyncSession, item_id: str) -> CatalogItem:
    result = await db.execute(select(CatalogItem).where(CatalogItem.id == item_id))
    item = result.scalar_one_or_none()
    if item is None:
        raise ItemNotFound(item_id)
    return item


async def list_items(db: AsyncSession, merchant_id: str | None = None) -> list[CatalogItem]:
    query = select(CatalogItem).order_by(CatalogItem.merchant_id, CatalogItem.name)
    if merchant_id is not None:
        query = query.where(CatalogItem.merchant_id == merchant_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def _lock_item(db: AsyncSession, item_id: str) -> CatalogItem:
    result = await db.execute(
        select(CatalogItem).where(CatalogItem.id == item_id).with_for_update()
    )
    item = result.scalar_one_or_none()
    if item is None:
        await db.rollback()
        raise ItemNotFound(item_id)
    return item


async def set_tracking(
    db: AsyncSession, item_id: str, enabled: bool, quantity: int | None = None
) -> CatalogItem:
    """
    Turn inventory tracking on or off.

    Disabling clears the stock quantity and leaves ``available`` untouched.
    Enabling uses ``quantity`` when given, else the current stock, else 0.
    """
    item = await _lock_item(db, item_id)
    state = item.stock
    if enabled:
        if quantity is None:
            quantity = state.quantity if isinstance(state, Tracked) else 0
        item.apply_state(Tracked(quantity=quantity, threshold=state.threshold))
    else:
        item.apply_state(Untracked(threshold=state.threshold))
    await db.commit()
    logger.info(
        "Tracking %s for %s (stock=%s, available=%s)",
        "enabled" if enabled else "disabled", item_id, item.stock_quantity, item.available,
    )
    return item


async def set_stock(db: AsyncSession, item_id: str, quantity: int) -> CatalogItem:
    item = await _lock_item(db, item_id)
    state = item.stock
    if not isinstance(state, Tracked):
        await db.rollback()
        raise TrackingDisabled(item_id)
    item.apply_state(Tracked(quantity=clamp(quantity), threshold=state.threshold))
    await db.commit()
    logger.info("Stock for %s set to %d (available=%s)", item_id, item.stock_quantity, item.available)
    return item


async def set_threshold(db: AsyncSession, item_id: str, threshold: int) -> CatalogItem:
    item = await _lock_item(db, item_id)
    state = item.stock
    if isinstance(state, Tracked):
        item.apply_state(Tracked(quantity=state.quantity, threshold=threshold))
    else:
        item.apply_state(Untracked(threshold=threshold))
    await db.commit()
    logger.info("Low-stock threshold for %s set to %d", item_id, item.low_stock_threshold)
    return item


async def set_availability(db: AsyncSession, item_id: str, available: bool) -> CatalogItem:
    """Manually toggle an untracked item. Tracked items derive availability from stock."""
    item = await _lock_item(db, item_id)
    if item.track_inventory:
        await db.rollback()
        raise AvailabilityIsDerived(item_id)
    item.available = available
    await db.commit()
    return item


async def resync_availability(db: AsyncSession) -> int:
    """Re-derive ``available`` for every tracked item. Returns how many rows changed."""
    result = await db.execute(
        select(CatalogItem).where(CatalogItem.track_inventory.is_(True)).with_for_update()
    )
    changed = 0
    for item in result.scalars():
        before = item.available
        item.apply_state(item.stock)
        if item.available != before:
            changed += 1
    await db.commit()
    if changed:
        logger.warning("Availability resync corrected %d tracked item(s)", changed)
    return changed


# ── Diagnostics ──────────────────────────────────────────────────────────────
@dataclass
class LedgerIssue:
    issue_type: str
    item_id: str
    name: str
    stock_quantity: int | None
    low_stock_threshold: int
    available: bool


@dataclass
class InventoryReport:
    total_items: int = 0
    items_tracked: int = 0
    items_not_tracked: int = 0
    items_low_stock: int = 0
    items_available: int = 0
    items_unavailable: int = 0
    issues: list[LedgerIssue] = field(default_factory=list)


def _issues_for(item: CatalogItem) -> list[str]:
    found = []
    stock, threshold = item.stock_quantity, item.low_stock_threshold
    if item.track_inventory and stock is None:
        found.append("tracking_enabled_null_stock")
    if stock is not None and stock < 0:
        found.append("negative_stock")
    if item.track_inventory and stock is not None:
        if item.available and stock <= threshold:
            found.append("available_at_or_below_threshold")
        if not item.available and stock > threshold:
            found.append("unavailable_above_threshold")
    return found


async def inventory_report(db: AsyncSession) -> InventoryReport:
    """Totals by stock state plus any rows that break the ledger invariants."""
    report = InventoryReport()
    for item in await list_items(db):
        report.total_items += 1
        if item.track_inventory:
            report.items_tracked += 1
            if item.stock_quantity is not None and classify(item.stock) != StockStatus.IN_STOCK:
                report.items_low_stock += 1
        else:
            report.items_not_tracked += 1
        if item.available:
            report.items_available += 1
        else:
            report.items_unavailable += 1
        for issue_type in _issues_for(item):
            report.issues.append(LedgerIssue(
                issue_type=issue_type,
                item_id=item.id,
                name=item.name,
                stock_quantity=item.stock_quantity,
                low_stock_threshold=item.low_stock_threshold,
                available=item.available,
            ))
    return report
