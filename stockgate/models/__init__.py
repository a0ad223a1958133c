from stockgate.models.catalog import CatalogItem, StockDeductionLog
from stockgate.models.order import Order, OrderLine

__all__ = ["CatalogItem", "StockDeductionLog", "Order", "OrderLine"]
