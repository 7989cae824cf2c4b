"""
Product and Variant models: what is stocked.
"""

from decimal import Decimal

from django.db import models
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

from lotman.models.enums import CostingMethod, OrderStatus, ProductStatus, VariantStatus


class Product(models.Model):
    """
    Groups variants and carries the settings shared by all of them:
    costing method, lead time, reorder buffer and the minimum order
    quantity (MOQ) that applies to the sum of all variant orders.
    """

    name = models.CharField(max_length=200, verbose_name=_('Name'))
    sku = models.CharField(
        max_length=64,
        unique=True,
        null=True,
        blank=True,
        verbose_name=_('Product SKU'),
    )
    costing_method = models.CharField(
        max_length=4,
        choices=CostingMethod.choices,
        default=CostingMethod.FIFO,
        verbose_name=_('Costing method'),
        help_text=_('Locked once any batch of the product has been consumed.'),
    )
    lead_time_days = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Lead time (days)'),
        help_text=_('Empty = LOTMAN["DEFAULT_LEAD_TIME_DAYS"].'),
    )
    reorder_buffer_days = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Reorder buffer (days)'),
        help_text=_('Empty = LOTMAN["DEFAULT_BUFFER_DAYS"].'),
    )
    min_order_qty = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Minimum order quantity'),
        help_text=_('Applies to the sum of all variants. 0 = no minimum.'),
    )
    enable_stock_alerts = models.BooleanField(
        default=True,
        verbose_name=_('Stock alerts enabled'),
    )
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Product')
        verbose_name_plural = _('Products')
        ordering = ['name']

    def save(self, *args, **kwargs):
        """Save product, refusing a costing method change on consumed stock."""
        if self.pk:
            stored = (
                Product.objects.filter(pk=self.pk)
                .values_list('costing_method', flat=True)
                .first()
            )
            if stored is not None and stored != self.costing_method and self.has_consumption():
                from lotman.exceptions import StockError
                raise StockError(
                    'COSTING_METHOD_LOCKED',
                    product=self.pk,
                    current=stored,
                    requested=self.costing_method,
                )
        super().save(*args, **kwargs)

    @property
    def effective_lead_time(self) -> int:
        """Lead time in days (0 or empty = configured default)."""
        from lotman.conf import lotman_settings
        return self.lead_time_days or lotman_settings.DEFAULT_LEAD_TIME_DAYS

    @property
    def effective_buffer_days(self) -> int:
        """Reorder buffer in days (empty = configured default, 0 is kept)."""
        from lotman.conf import lotman_settings
        if self.reorder_buffer_days is None:
            return lotman_settings.DEFAULT_BUFFER_DAYS
        return self.reorder_buffer_days

    def has_consumption(self) -> bool:
        """
        Has stock of this product been drawn from a batch and kept drawn?

        Compensating movements and draws of cancelled orders do not count.
        """
        from lotman.models.movement import Movement
        return (
            Movement.objects
            .filter(variant__product_id=self.pk, quantity__lt=0, reverses__isnull=True)
            .exclude(order__status=OrderStatus.CANCELLED)
            .exists()
        )

    def __str__(self) -> str:
        return self.name


class Variant(models.Model):
    """
    A sellable SKU.

    Stock on hand is never stored: it is the sum of the remaining
    quantity of the variant's batches. ``committed`` and ``incoming``
    are plain counters kept by the order side (backorders, open
    purchase orders).
    """

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name='variants',
        verbose_name=_('Product'),
    )
    sku = models.CharField(max_length=64, unique=True, verbose_name=_('SKU'))
    name = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Name'))

    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Unit price'),
    )
    cost = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Reference cost'),
        help_text=_('Informative only. Valuation always comes from batches.'),
    )

    reorder_point = models.PositiveIntegerField(default=0, verbose_name=_('Reorder point'))
    reorder_qty = models.PositiveIntegerField(default=0, verbose_name=_('Reorder quantity'))
    lead_time_days = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Lead time (days)'),
        help_text=_('Empty = use the product lead time.'),
    )
    allow_backorder = models.BooleanField(default=False, verbose_name=_('Allow backorder'))

    committed = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Committed'),
    )
    incoming = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Incoming'),
    )

    status = models.CharField(
        max_length=20,
        choices=VariantStatus.choices,
        default=VariantStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Variant')
        verbose_name_plural = _('Variants')
        ordering = ['product', 'id']

    @property
    def stock_on_hand(self) -> Decimal:
        """Sum of remaining batch quantities."""
        return self.batches.aggregate(
            t=Coalesce(Sum('quantity'), Decimal('0'))
        )['t']

    @property
    def available(self) -> Decimal:
        """Stock on hand not yet owed to customers."""
        return self.stock_on_hand - self.committed

    @property
    def effective_lead_time(self) -> int:
        """Variant lead time, falling back to the product's."""
        if self.lead_time_days:
            return self.lead_time_days
        return self.product.effective_lead_time

    def __str__(self) -> str:
        return self.sku
