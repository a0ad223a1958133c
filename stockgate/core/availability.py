"""
Stockgate — Stock state and the availability rule

An item's inventory fields form a tagged variant: either ``Tracked`` with a
quantity and a threshold, or ``Untracked`` with only a threshold. The quantity
column is NULL exactly when the state is ``Untracked``.

Availability of a tracked item is ``quantity > threshold`` (strictly greater:
stock equal to the threshold is unavailable). Untracked items keep whatever
availability they already had.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Union


class StockStatus(str, Enum):
    NOT_TRACKED = "not_tracked"
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


@dataclass(frozen=True)
class Tracked:
    quantity: int
    threshold: int = 0

    def __post_init__(self):
        object.__setattr__(self, "quantity", clamp(self.quantity))
        object.__setattr__(self, "threshold", clamp(self.threshold))


@dataclass(frozen=True)
class Untracked:
    threshold: int = 0

    def __post_init__(self):
        object.__setattr__(self, "threshold", clamp(self.threshold))


StockState = Union[Tracked, Untracked]


def clamp(value: int) -> int:
    """Floor a quantity or threshold at zero."""
    return max(int(value), 0)


def derive_available(state: StockState, current: bool) -> bool:
    if isinstance(state, Tracked):
        return state.quantity > state.threshold
    return current


def deduct(state: Tracked, quantity: int) -> Tracked:
    """Remove ``quantity`` units, never going below zero."""
    if quantity <= 0:
        return state
    return replace(state, quantity=max(state.quantity - quantity, 0))


def classify(state: StockState) -> StockStatus:
    if isinstance(state, Untracked):
        return StockStatus.NOT_TRACKED
    if state.quantity > state.threshold:
        return StockStatus.IN_STOCK
    if state.quantity > 0:
        return StockStatus.LOW_STOCK
    return StockStatus.OUT_OF_STOCK
