"""
Ledger mutators: clamping, tracking toggles and availability derivation.
"""
import pytest

from stockgate.core.errors import AvailabilityIsDerived, ItemNotFound, TrackingDisabled
from stockgate.db import ledger


@pytest.mark.asyncio
async def test_set_stock_rederives_availability(sessions, make_item, load_item):
    item = await make_item("Adobo", stock=50, threshold=10)
    assert item.available is True

    async with sessions() as db:
        await ledger.set_stock(db, item.id, 5)
    stored = await load_item(item.id)
    assert stored.stock_quantity == 5
    assert stored.available is False

    async with sessions() as db:
        await ledger.set_stock(db, item.id, 100)
    assert (await load_item(item.id)).available is True


@pytest.mark.asyncio
@pytest.mark.parametrize("stock,threshold,expected", [(10, 10, False), (11, 10, True), (0, 0, False)])
async def test_threshold_boundary(sessions, make_item, load_item, stock, threshold, expected):
    item = await make_item("Lumpia", stock=50, threshold=0)
    async with sessions() as db:
        await ledger.set_threshold(db, item.id, threshold)
    async with sessions() as db:
        await ledger.set_stock(db, item.id, stock)
    stored = await load_item(item.id)
    assert stored.available is expected
    assert stored.available == (stored.stock_quantity > stored.low_stock_threshold)


@pytest.mark.asyncio
async def test_negative_stock_and_threshold_are_clamped(sessions, make_item, load_item):
    item = await make_item("Pancit", stock=5, threshold=1)
    async with sessions() as db:
        await ledger.set_stock(db, item.id, -3)
    async with sessions() as db:
        await ledger.set_threshold(db, item.id, -9)
    stored = await load_item(item.id)
    assert stored.stock_quantity == 0
    assert stored.low_stock_threshold == 0
    assert stored.available is False


@pytest.mark.asyncio
async def test_disable_tracking_clears_stock_and_keeps_availability(sessions, make_item, load_item):
    item = await make_item("Halo-halo", stock=2, threshold=5)
    assert item.available is False

    async with sessions() as db:
        await ledger.set_tracking(db, item.id, False)
    stored = await load_item(item.id)
    assert stored.track_inventory is False
    assert stored.stock_quantity is None
    assert stored.available is False
    assert stored.low_stock_threshold == 5


@pytest.mark.asyncio
async def test_enable_tracking_with_and_without_quantity(sessions, make_item, load_item):
    item = await make_item("Siopao", threshold=3)
    async with sessions() as db:
        await ledger.set_tracking(db, item.id, True)
    stored = await load_item(item.id)
    assert stored.stock_quantity == 0
    assert stored.available is False

    async with sessions() as db:
        await ledger.set_tracking(db, item.id, True, quantity=20)
    stored = await load_item(item.id)
    assert stored.stock_quantity == 20
    assert stored.available is True


@pytest.mark.asyncio
async def test_set_stock_on_untracked_item_is_rejected(sessions, make_item, load_item):
    item = await make_item("Kare-kare")
    async with sessions() as db:
        with pytest.raises(TrackingDisabled):
            await ledger.set_stock(db, item.id, 10)
    assert (await load_item(item.id)).stock_quantity is None


@pytest.mark.asyncio
async def test_manual_availability_only_for_untracked(sessions, make_item, load_item):
    untracked = await make_item("Sinigang")
    tracked = await make_item("Lechon", stock=4, threshold=1)

    async with sessions() as db:
        await ledger.set_availability(db, untracked.id, False)
    assert (await load_item(untracked.id)).available is False

    async with sessions() as db:
        with pytest.raises(AvailabilityIsDerived):
            await ledger.set_availability(db, tracked.id, False)
    assert (await load_item(tracked.id)).available is True


@pytest.mark.asyncio
async def test_unknown_item(sessions):
    async with sessions() as db:
        with pytest.raises(ItemNotFound):
            await ledger.set_threshold(db, "missing", 1)


@pytest.mark.asyncio
async def test_report_and_resync_fix_drifted_rows(sessions, make_item, load_item):
    good = await make_item("Tapsilog", stock=9, threshold=2)
    drifted = await make_item("Longsilog", stock=1, threshold=2)
    await make_item("Rice")

    # Simulate a row written behind the ledger's back.
    async with sessions() as db:
        row = await db.get(type(drifted), drifted.id)
        row.available = True
        await db.commit()

    async with sessions() as db:
        report = await ledger.inventory_report(db)
    assert report.total_items == 3
    assert report.items_tracked == 2
    assert report.items_not_tracked == 1
    assert report.items_low_stock == 1
    assert [(i.item_id, i.issue_type) for i in report.issues] == [
        (drifted.id, "available_at_or_below_threshold")
    ]

    async with sessions() as db:
        assert await ledger.resync_availability(db) == 1
    assert (await load_item(drifted.id)).available is False
    assert (await load_item(good.id)).available is True

    async with sessions() as db:
        assert (await ledger.inventory_report(db)).issues == []
