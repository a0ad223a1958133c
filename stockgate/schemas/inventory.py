"""
Stockgate — Inventory schemas
"""
from pydantic import BaseModel, Field

from stockgate.core.availability import StockStatus, classify
from stockgate.models.catalog import CatalogItem


class StockItem(BaseModel):
    id: str
    merchant_id: str
    name: str
    track_inventory: bool
    stock_quantity: int | None
    low_stock_threshold: int
    available: bool
    status: StockStatus

    @classmethod
    def from_item(cls, item: CatalogItem) -> "StockItem":
        return cls(
            id=item.id,
            merchant_id=item.merchant_id,
            name=item.name,
            track_inventory=item.track_inventory,
            stock_quantity=item.stock_quantity,
            low_stock_threshold=item.low_stock_threshold,
            available=item.available,
            status=classify(item.stock),
        )


# Negative values are accepted and floored at zero by the ledger.
class TrackingUpdate(BaseModel):
    enabled: bool
    quantity: int | None = None


class StockUpdate(BaseModel):
    quantity: int


class ThresholdUpdate(BaseModel):
    threshold: int


class AvailabilityUpdate(BaseModel):
    available: bool


class DecrementEntry(BaseModel):
    id: str = Field(..., min_length=1)
    quantity: int


class LedgerIssueOut(BaseModel):
    issue_type: str
    item_id: str
    name: str
    stock_quantity: int | None
    low_stock_threshold: int
    available: bool


class InventoryReportOut(BaseModel):
    total_items: int
    items_tracked: int
    items_not_tracked: int
    items_low_stock: int
    items_available: int
    items_unavailable: int
    issues: list[LedgerIssueOut]


class ResyncResult(BaseModel):
    corrected: int
