"""
Batch model: a receipt lot of a variant, with its own cost.

A batch is born on a receipt with its full quantity and is drained by
sales, damage, expiry and negative adjustments. It is never deleted:
a drained batch stays as a zero-quantity tombstone whose consumption
history remains queryable.

Usage:
    stock.receive_purchase(variant, 100, Decimal('10'), batch_ref='LOT-A')

    variant.batches.active()              # batches with stock left
    variant.batches.get(reference='LOT-A').history
    Batch.objects.expiring_before(date.today() + timedelta(days=30))
"""

from datetime import date as date_cls
from decimal import Decimal

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.db.models import Max, Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class BatchQuerySet(models.QuerySet):
    """Custom QuerySet for Batch with convenience filters."""

    def active(self):
        """Batches with remaining stock."""
        return self.filter(quantity__gt=0)

    def depleted(self):
        """Tombstones: batches drained to zero."""
        return self.filter(quantity=0)

    def expiring_before(self, date):
        """Batches with stock left expiring on or before the given date."""
        return self.active().filter(expiry_date__lte=date, expiry_date__isnull=False)

    def expired(self):
        """Batches with stock left past their expiry date."""
        return self.active().filter(expiry_date__lt=date_cls.today())

    def for_variant(self, variant):
        return self.filter(variant=variant)


class Batch(models.Model):
    """
    Receipt lot of a variant.

    Invariants:
    - quantity >= 0 (database check constraint)
    - quantity + quantity_consumed == received_quantity
    - history is append-only; each entry is
      {"reference": str, "quantity": str, "timestamp": iso datetime}
      with a negative quantity for stock given back (order cancellation)
    """

    variant = models.ForeignKey(
        'lotman.Variant',
        on_delete=models.PROTECT,
        related_name='batches',
        verbose_name=_('Variant'),
    )
    sequence = models.PositiveIntegerField(
        verbose_name=_('Sequence'),
        help_text=_('Insertion order within the variant. Breaks receipt date ties.'),
    )

    reference = models.CharField(
        max_length=64,
        blank=True,
        default='',
        db_index=True,
        verbose_name=_('Lot code'),
    )
    supplier = models.CharField(
        max_length=200,
        blank=True,
        default='',
        verbose_name=_('Supplier'),
    )
    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Unit cost'),
    )

    received_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Received'),
    )
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Remaining'),
    )
    quantity_consumed = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Consumed'),
    )
    history = models.JSONField(
        default=list,
        blank=True,
        encoder=DjangoJSONEncoder,
        verbose_name=_('Consumption history'),
    )

    received_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        verbose_name=_('Received at'),
    )
    expiry_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Expiry date'),
    )
    order = models.ForeignKey(
        'lotman.InventoryOrder',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='batches',
        verbose_name=_('Purchase order'),
    )

    created_at = models.DateTimeField(auto_now_add=True)

    objects = BatchQuerySet.as_manager()

    class Meta:
        verbose_name = _('Batch')
        verbose_name_plural = _('Batches')
        ordering = ['variant', 'received_at', 'sequence']
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gte=0),
                name='lotman_batch_quantity_non_negative',
            ),
            models.UniqueConstraint(
                fields=['variant', 'sequence'],
                name='lotman_unique_batch_sequence',
            ),
        ]
        indexes = [
            models.Index(fields=['variant', 'received_at'], name='lotman_batc_variant_6b1f0e_idx'),
            models.Index(fields=['expiry_date'], name='lotman_batc_expiry__3c2a9d_idx'),
        ]

    def save(self, *args, **kwargs):
        if self.sequence is None:
            last = Batch.objects.filter(variant_id=self.variant_id).aggregate(m=Max('sequence'))['m']
            self.sequence = 0 if last is None else last + 1
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion: batches are part of the audit trail."""
        raise ValueError(
            "Batches are never deleted. "
            "A drained batch stays with quantity zero."
        )

    # ══════════════════════════════════════════════════════════════
    # CONSUMPTION
    # ══════════════════════════════════════════════════════════════

    def log_consumption(self, reference: str, quantity: Decimal, when=None) -> None:
        """
        Apply a draw (positive) or a give-back (negative) and record it.

        Only touches the in-memory instance; the caller saves.
        """
        self.quantity -= quantity
        self.quantity_consumed += quantity
        self.history.append({
            'reference': reference or '',
            'quantity': str(quantity),
            'timestamp': (when or timezone.now()).isoformat(),
        })

    def consumed_by(self, reference: str) -> Decimal:
        """Net quantity drawn from this batch under a transaction reference."""
        return sum(
            (Decimal(entry['quantity']) for entry in self.history
             if entry.get('reference') == reference),
            Decimal('0'),
        )

    @property
    def is_depleted(self) -> bool:
        return self.quantity <= 0

    @property
    def is_expired(self) -> bool:
        """Is this batch past its expiry date?"""
        if self.expiry_date is None:
            return False
        return date_cls.today() > self.expiry_date

    @property
    def value(self) -> Decimal:
        """Remaining quantity at this batch's cost."""
        return self.quantity * self.unit_cost

    def __str__(self) -> str:
        ref = self.reference or f"#{self.sequence}"
        expiry = f" (exp:{self.expiry_date})" if self.expiry_date else ""
        return f"{self.variant} {ref}: {self.quantity}{expiry}"
