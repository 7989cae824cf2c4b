"""
Enums for Lotman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class CostingMethod(models.TextChoices):
    """
    Inventory costing convention of a product.

    FIFO: oldest batches are depleted first, remaining stock carries the
          newest costs.
    LIFO: newest batches are depleted first, remaining stock carries the
          oldest costs.
    WAC:  batches form one pool valued at the weighted average cost.
    """
    FIFO = 'FIFO', _('First In, First Out')
    LIFO = 'LIFO', _('Last In, First Out')
    WAC = 'WAC', _('Weighted Average Cost')


class MovementKind(models.TextChoices):
    """Kind of ledger entry."""
    INBOUND = 'in', _('Inbound')
    OUTBOUND = 'out', _('Outbound')
    ADJUSTMENT = 'adjust', _('Adjustment')
    TRANSFER = 'transfer', _('Transfer')
    RETURN = 'return', _('Return')
    DAMAGE = 'damage', _('Damage')
    EXPIRED = 'expired', _('Expired')


class ProductStatus(models.TextChoices):
    ACTIVE = 'active', _('Active')
    ARCHIVED = 'archived', _('Archived')


class VariantStatus(models.TextChoices):
    ACTIVE = 'active', _('Active')
    INACTIVE = 'inactive', _('Inactive')


class OrderKind(models.TextChoices):
    """What kind of event an inventory order stands for."""
    SALE = 'sale', _('Sale')
    PURCHASE = 'purchase', _('Purchase')
    ADJUSTMENT = 'adjustment', _('Adjustment')
    DAMAGE = 'damage', _('Damage')
    EXPIRED = 'expired', _('Expired')
    RETURN = 'return', _('Return')


class OrderStatus(models.TextChoices):
    """Order lifecycle status."""
    PENDING = 'pending', _('Pending')
    COMPLETED = 'completed', _('Completed')
    CANCELLED = 'cancelled', _('Cancelled')  # Effects reversed in the ledger


class AlertSeverity(models.TextChoices):
    """Severity of a stock risk alert, most urgent first."""
    OUT_OF_STOCK = 'out-of-stock', _('Out of stock')
    CRITICAL = 'critical', _('Critical')
    LOW_STOCK = 'low-stock', _('Low stock')
