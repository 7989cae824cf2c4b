"""
Movement model: Immutable ledger of stock transitions.
"""

from decimal import Decimal

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from lotman.models.enums import MovementKind, OrderStatus


class MovementQuerySet(models.QuerySet):
    """Ledger queries."""

    def for_variant(self, variant):
        return self.filter(variant=variant)

    def chronological(self):
        return self.order_by('timestamp', 'id')

    def excluding_cancelled(self):
        """Drop movements (originals and compensations) of cancelled orders."""
        return self.filter(Q(order__isnull=True) | ~Q(order__status=OrderStatus.CANCELLED))


class Movement(models.Model):
    """
    Immutable record of one stock transition of a variant.

    Rules:
    - NEVER update() or delete()
    - Corrections are new Movements (see ``reverses``)
    - new_stock == previous_stock + quantity
    - previous_stock == new_stock of the variant's previous movement

    Movements are written only by lotman.services.movements, in the same
    transaction as the batch mutation they describe.
    """

    variant = models.ForeignKey(
        'lotman.Variant',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Variant'),
    )
    kind = models.CharField(
        max_length=10,
        choices=MovementKind.choices,
        db_index=True,
        verbose_name=_('Kind'),
    )

    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Quantity'),
        help_text=_('Positive = in, negative = out'),
    )
    previous_stock = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Previous stock'),
    )
    new_stock = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('New stock'),
    )

    order = models.ForeignKey(
        'lotman.InventoryOrder',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Order'),
    )
    reference = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Reference'))
    reason = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Reason'))
    notes = models.TextField(blank=True, default='', verbose_name=_('Notes'))

    batch = models.ForeignKey(
        'lotman.Batch',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Batch'),
    )
    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Unit cost'),
    )
    reverses = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='reversals',
        verbose_name=_('Reverses'),
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        verbose_name=_('User'),
    )
    metadata = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Timestamp'))

    objects = MovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movement')
        verbose_name_plural = _('Movements')
        ordering = ['timestamp', 'id']
        indexes = [
            models.Index(fields=['variant', 'timestamp'], name='lotman_move_variant_8d4e21_idx'),
            models.Index(fields=['kind', 'timestamp'], name='lotman_move_kind_5a7c30_idx'),
        ]

    def save(self, *args, **kwargs):
        """Save a new movement. Existing movements are immutable."""
        if self.pk:
            raise ValueError(
                "Movements are immutable. "
                "To correct one, record a new Movement."
            )
        if self.new_stock != self.previous_stock + self.quantity:
            raise ValueError(
                f"new_stock {self.new_stock} != previous_stock "
                f"{self.previous_stock} + quantity {self.quantity}"
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion: movements are immutable."""
        raise ValueError(
            "Movements are immutable. "
            "To reverse one, record a compensating Movement."
        )

    def __str__(self) -> str:
        signal = '+' if self.quantity > 0 else ''
        return f"{self.variant} {signal}{self.quantity} ({self.previous_stock} → {self.new_stock}) | {self.kind}"
