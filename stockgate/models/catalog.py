"""
Stockgate — Catalog ledger models

[CONFIG DATA]        catalog_items rows are created by catalog management
[TRANSACTIONAL DATA] stock_quantity / available change on every checkout
[TRANSACTIONAL DATA] stock_deduction_log — audit of applied decrements
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import String, Integer, DateTime, Boolean, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from stockgate.core.availability import StockState, Tracked, Untracked, derive_available
from stockgate.db.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogItem(Base):
    """
    One menu item and its inventory state.

    The inventory columns are written only through ``apply_state``, which
    recomputes ``available`` in the same flush.
    """
    __tablename__ = "catalog_items"
    __table_args__ = (
        CheckConstraint(
            "(track_inventory AND stock_quantity IS NOT NULL) "
            "OR (NOT track_inventory AND stock_quantity IS NULL)",
            name="ck_catalog_items_stock_iff_tracked",
        ),
        CheckConstraint("stock_quantity IS NULL OR stock_quantity >= 0", name="ck_catalog_items_stock_nonneg"),
        CheckConstraint("low_stock_threshold >= 0", name="ck_catalog_items_threshold_nonneg"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    merchant_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    track_inventory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    stock_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )

    @property
    def stock(self) -> StockState:
        if self.track_inventory:
            return Tracked(quantity=self.stock_quantity or 0, threshold=self.low_stock_threshold or 0)
        return Untracked(threshold=self.low_stock_threshold or 0)

    def apply_state(self, state: StockState) -> None:
        """Write a stock state and re-derive availability from it."""
        if isinstance(state, Tracked):
            self.track_inventory = True
            self.stock_quantity = state.quantity
        else:
            self.track_inventory = False
            self.stock_quantity = None
        self.low_stock_threshold = state.threshold
        current = True if self.available is None else self.available
        self.available = derive_available(state, current)

    def __repr__(self) -> str:
        return f"<CatalogItem id={self.id} tracked={self.track_inventory} stock={self.stock_quantity}>"


class StockDeductionLog(Base):
    """
    [TRANSACTIONAL DATA] — one row per decrement entry actually applied.
    """
    __tablename__ = "stock_deduction_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    item_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    quantity_requested: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_deducted: Mapped[int] = mapped_column(Integer, nullable=False)
    stock_after: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
