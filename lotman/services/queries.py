"""
Stock queries: read-only operations.

All methods are classmethod on Stock and use no locking.
"""

from datetime import date, timedelta
from decimal import Decimal

from lotman.conf import lotman_settings
from lotman.costing import ZERO, consumption_order, valuate
from lotman.models.batch import Batch
from lotman.models.enums import VariantStatus


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def stock_on_hand(cls, variant) -> Decimal:
        """Sum of the remaining quantity of the variant's batches."""
        return variant.stock_on_hand

    @classmethod
    def available(cls, variant) -> Decimal:
        """
        Stock that can still be promised.

        available = stock_on_hand - committed (backorders)
        """
        return variant.available

    @classmethod
    def batches(cls, variant, include_empty: bool = False) -> list[Batch]:
        """
        Batches of a variant in the order the next sale will drain them.

        Args:
            variant: Variant
            include_empty: Include zero-quantity tombstones
        """
        qs = variant.batches.all()
        if not include_empty:
            qs = qs.active()
        return consumption_order(qs, variant.product.costing_method)

    @classmethod
    def history(cls, variant, exclude_cancelled: bool = False):
        """
        Movement ledger of a variant, oldest first.

        Args:
            exclude_cancelled: Drop the movements of cancelled orders,
                originals and compensations alike

        Returns:
            QuerySet of Movement
        """
        qs = variant.movements.select_related('order', 'batch').chronological()
        if exclude_cancelled:
            qs = qs.excluding_cancelled()
        return qs

    @classmethod
    def latest_movement(cls, variant):
        """Most recent movement of a variant, or None."""
        from lotman.services.movements import latest_movement
        return latest_movement(variant)

    @classmethod
    def valuate_inventory(cls, variant, method: str | None = None) -> Decimal:
        """
        Value of the variant's stock on hand.

        Args:
            variant: Variant
            method: Costing method override (default: the product's)

        Returns:
            Decimal value, never derived from the variant's reference cost
        """
        batches = list(variant.batches.all())
        on_hand = sum((b.quantity for b in batches), ZERO)
        return valuate(on_hand, batches, method or variant.product.costing_method)

    @classmethod
    def valuate_product(cls, product) -> Decimal:
        """Value of all active variants of a product."""
        return sum(
            (cls.valuate_inventory(v) for v in product.variants.filter(status=VariantStatus.ACTIVE)),
            ZERO,
        )

    @classmethod
    def expiring_batches(cls, within_days: int | None = None):
        """
        Batches with stock left expiring within the horizon (expired included).

        Args:
            within_days: Horizon in days (default LOTMAN['EXPIRY_WARNING_DAYS'])

        Returns:
            QuerySet of Batch, soonest expiry first
        """
        if within_days is None:
            within_days = lotman_settings.EXPIRY_WARNING_DAYS
        horizon = date.today() + timedelta(days=within_days)
        return (
            Batch.objects.expiring_before(horizon)
            .select_related('variant', 'variant__product')
            .order_by('expiry_date', 'received_at', 'sequence')
        )
