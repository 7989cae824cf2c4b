"""
Lotman Models.

Core models for the batch ledger:
- Product / Variant: what is stocked (stock on hand is derived)
- Batch: receipt lots, never deleted
- Movement: Immutable ledger of stock transitions
- InventoryOrder: order header used for cancellation and demand
"""

from lotman.models.batch import Batch
from lotman.models.enums import (
    AlertSeverity,
    CostingMethod,
    MovementKind,
    OrderKind,
    OrderStatus,
    ProductStatus,
    VariantStatus,
)
from lotman.models.movement import Movement
from lotman.models.order import InventoryOrder
from lotman.models.product import Product, Variant

__all__ = [
    'AlertSeverity',
    'CostingMethod',
    'MovementKind',
    'OrderKind',
    'OrderStatus',
    'ProductStatus',
    'VariantStatus',
    'Product',
    'Variant',
    'Batch',
    'Movement',
    'InventoryOrder',
]
