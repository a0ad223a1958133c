"""
Stockgate — Exception hierarchy

Admission failures carry a ``category`` so callers can tell a customer-fixable
problem (stock, cooldown) from a caller bug or an infrastructure fault.
Ledger failures cover the admin inventory operations and the decrementer.
"""

GENERIC_RETRY_MESSAGE = "Please wait and try again."


class StockgateError(Exception):
    """Base exception for everything raised by this service."""

    code: str = "stockgate_error"

    def __init__(self, message: str | None = None) -> None:
        if message is None:
            message = "An unspecified stockgate error occurred."
        super().__init__(message)


# ── Admission ────────────────────────────────────────────────────────────────
class AdmissionError(StockgateError):
    code = "admission_error"
    category = "admission"


class ValidationError(AdmissionError):
    """Malformed or empty cart. The caller has a bug; retrying will not help."""

    code = "validation_error"
    category = "validation"


class InsufficientStock(AdmissionError):
    """
    A tracked item in the cart asks for more than the ledger holds.

    The customer can lower the quantity and resubmit.
    """

    code = "insufficient_stock"
    category = "stock"

    def __init__(self, item_name: str, requested: int | None = None, in_stock: int | None = None) -> None:
        self.item_name = item_name
        self.requested = requested
        self.in_stock = in_stock
        super().__init__(f"Insufficient stock for {item_name}")


class RateLimited(AdmissionError):
    """Another submission from the same customer is inside the cooldown window."""

    code = "rate_limited"
    category = "rate_limit"

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(GENERIC_RETRY_MESSAGE)


class PersistenceFailure(AdmissionError):
    """Datastore unavailable, timed out, or rejected the write. Nothing was committed."""

    code = "persistence_failure"
    category = "persistence"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or GENERIC_RETRY_MESSAGE)


# ── Ledger ───────────────────────────────────────────────────────────────────
class LedgerError(StockgateError):
    code = "ledger_error"


class ItemNotFound(LedgerError):
    code = "item_not_found"

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Catalog item '{item_id}' not found.")


class TrackingDisabled(LedgerError):
    """Stock can only be written while inventory tracking is enabled."""

    code = "tracking_disabled"

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Inventory tracking is disabled for '{item_id}'; enable it before setting stock.")


class AvailabilityIsDerived(LedgerError):
    """Availability of a tracked item is computed from stock and threshold."""

    code = "availability_is_derived"

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(
            f"Availability of '{item_id}' is derived from its stock; disable tracking to set it manually."
        )


class DecrementFailure(LedgerError):
    """The batch decrement transaction was rolled back. No deduction was applied."""

    code = "decrement_failure"
