"""
Stock demand: daily demand rate of a variant.

    measured rate = non-cancelled demand in the window / window days

When the window holds no demand, planning falls back to the configured
reorder point spread over the lead time, then to LOTMAN['MIN_DAILY_RATE'].
"""

from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from lotman.adapters import get_demand_source
from lotman.conf import lotman_settings
from lotman.costing import ZERO
from lotman.exceptions import StockError
from lotman.reorder import effective_daily_rate


class StockDemand:
    """Demand estimation methods."""

    @classmethod
    def demand_window(cls, variant) -> int:
        """Window in days: LOTMAN['DEMAND_WINDOW_DAYS'] or lead time + buffer."""
        configured = lotman_settings.DEMAND_WINDOW_DAYS
        if configured:
            return configured
        return variant.effective_lead_time + variant.product.effective_buffer_days

    @classmethod
    def average_daily_rate(cls, variant, window_days: int | None = None) -> Decimal:
        """
        Measured demand per day over the trailing window.

        Args:
            variant: Variant
            window_days: Window length (default: demand_window())

        Returns:
            Decimal rate, 0 when nothing sold in the window

        Raises:
            StockError('INVALID_QUANTITY'): If window_days <= 0
        """
        if window_days is None:
            window_days = cls.demand_window(variant)
        if window_days <= 0:
            raise StockError('INVALID_QUANTITY', window_days=window_days)

        since = timezone.now() - timedelta(days=window_days)
        total = sum(
            (
                record.quantity
                for record in get_demand_source().demand_for(variant, since)
                if not record.cancelled and record.date >= since
            ),
            ZERO,
        )
        return total / Decimal(window_days)

    @classmethod
    def daily_rate(cls, variant, window_days: int | None = None) -> Decimal:
        """Rate to plan with: measured, else reorder point / lead time, else the floor."""
        return effective_daily_rate(
            cls.average_daily_rate(variant, window_days),
            variant.reorder_point,
            variant.effective_lead_time,
            lotman_settings.MIN_DAILY_RATE,
        )
