"""
Stockgate — Inventory admin API

Every write goes through the ledger operations so availability is always
re-derived; there is no route that writes ``available`` for a tracked item.
"""
from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from stockgate.core.errors import ItemNotFound, TrackingDisabled, AvailabilityIsDerived
from stockgate.db import ledger
from stockgate.db.database import get_db
from stockgate.schemas.inventory import (
    StockItem,
    TrackingUpdate,
    StockUpdate,
    ThresholdUpdate,
    AvailabilityUpdate,
    InventoryReportOut,
    ResyncResult,
)

router = APIRouter(prefix="/inventory", tags=["inventory"])


async def _run(operation, *args):
    try:
        item = await operation(*args)
    except ItemNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (TrackingDisabled, AvailabilityIsDerived) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return StockItem.from_item(item)


@router.get("", response_model=list[StockItem])
async def list_stock(
    merchant_id: str | None = Query(None, description="Only items of this merchant"),
    db: AsyncSession = Depends(get_db),
):
    return [StockItem.from_item(i) for i in await ledger.list_items(db, merchant_id)]


@router.get("/report", response_model=InventoryReportOut)
async def inventory_report(db: AsyncSession = Depends(get_db)):
    """Stock totals and any rows whose availability disagrees with their stock."""
    report = await ledger.inventory_report(db)
    return InventoryReportOut(**asdict(report))


@router.post("/resync", response_model=ResyncResult)
async def resync_availability(db: AsyncSession = Depends(get_db)):
    return ResyncResult(corrected=await ledger.resync_availability(db))


@router.get("/{item_id}", response_model=StockItem)
async def get_stock(item_id: str, db: AsyncSession = Depends(get_db)):
    return await _run(ledger.get_item, db, item_id)


@router.put("/{item_id}/tracking", response_model=StockItem)
async def set_tracking(item_id: str, payload: TrackingUpdate, db: AsyncSession = Depends(get_db)):
    return await _run(ledger.set_tracking, db, item_id, payload.enabled, payload.quantity)


@router.put("/{item_id}/stock", response_model=StockItem)
async def set_stock(item_id: str, payload: StockUpdate, db: AsyncSession = Depends(get_db)):
    return await _run(ledger.set_stock, db, item_id, payload.quantity)


@router.put("/{item_id}/threshold", response_model=StockItem)
async def set_threshold(item_id: str, payload: ThresholdUpdate, db: AsyncSession = Depends(get_db)):
    return await _run(ledger.set_threshold, db, item_id, payload.threshold)


@router.put("/{item_id}/availability", response_model=StockItem)
async def set_availability(item_id: str, payload: AvailabilityUpdate, db: AsyncSession = Depends(get_db)):
    return await _run(ledger.set_availability, db, item_id, payload.available)
