"""
InventoryOrder model: the order a ledger effect belongs to.

Only what the ledger needs is kept here: a reference, a kind and a
status. Cancelling an order is done through stock.cancel_order(),
which compensates its movements and gives consumed stock back to the
exact batches it came from.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from lotman.models.enums import OrderKind, OrderStatus


class InventoryOrder(models.Model):
    """Order header referenced by batches and movements."""

    reference = models.CharField(
        max_length=100,
        unique=True,
        verbose_name=_('Reference'),
    )
    kind = models.CharField(
        max_length=20,
        choices=OrderKind.choices,
        verbose_name=_('Kind'),
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.COMPLETED,
        db_index=True,
        verbose_name=_('Status'),
    )
    order_date = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Order date'))
    cancelled_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Cancelled at'))
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Inventory order')
        verbose_name_plural = _('Inventory orders')
        ordering = ['-order_date']

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED

    def __str__(self) -> str:
        return f"{self.get_kind_display()} {self.reference}"
