"""
Stock Service: The single public interface for all stock operations.

Usage:
    from lotman import stock, StockError

    stock.receive_purchase(variant, 100, Decimal('10'), batch_ref='LOT-A')
    movement, backordered = stock.record_sale(variant, 30, order_ref='SO-1')
    stock.valuate_inventory(variant)
    stock.cancel_order('SO-1')
"""

from lotman.services import (
    StockAlerts,
    StockAudit,
    StockDemand,
    StockMovements,
    StockPlanning,
    StockQueries,
)


class Stock(StockQueries, StockMovements, StockDemand, StockPlanning, StockAlerts, StockAudit):
    """
    Single interface for all stock operations.

    Parameter convention: (variant, quantity, ...)

    IMPORTANT: All state-changing methods run in one atomic transaction
    holding a row lock on the variant. See lotman.services.movements.
    """
