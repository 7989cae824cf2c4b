"""
Lotman: batch ledger and replenishment engine for Django.

Usage:
    from lotman import stock, StockError

    stock.receive_purchase(variant, 100, Decimal('10'), batch_ref='LOT-A')
    stock.record_sale(variant, 30, order_ref='SO-1')
    stock.valuate_inventory(variant)
    stock.risk_alerts()
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'stock':
        from lotman.service import Stock
        return Stock
    elif name == 'StockError':
        from lotman.exceptions import StockError
        return StockError
    elif name == 'Product':
        from lotman.models.product import Product
        return Product
    elif name == 'Variant':
        from lotman.models.product import Variant
        return Variant
    elif name == 'Batch':
        from lotman.models.batch import Batch
        return Batch
    elif name == 'Movement':
        from lotman.models.movement import Movement
        return Movement
    elif name == 'InventoryOrder':
        from lotman.models.order import InventoryOrder
        return InventoryOrder
    elif name == 'CostingMethod':
        from lotman.models.enums import CostingMethod
        return CostingMethod
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'stock',
    'StockError',
    'Product',
    'Variant',
    'Batch',
    'Movement',
    'InventoryOrder',
    'CostingMethod',
]

__version__ = '0.1.0'
