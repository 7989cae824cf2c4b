"""
Reorder metrics and stock risk classification: pure, no database.

    rate 2/day, lead 7 days, buffer 7 days
    safety stock  = ceil(2 * 7)       = 14
    reorder point = ceil(2 * 7 + 14)  = 28
    reorder qty   = ceil(2 * (7 + 7)) = 28
"""

import math
from dataclasses import asdict, dataclass, replace
from decimal import Decimal

from lotman.costing import as_decimal
from lotman.exceptions import StockError
from lotman.models.enums import AlertSeverity

SEVERITY_RANK = {
    AlertSeverity.OUT_OF_STOCK.value: 0,
    AlertSeverity.CRITICAL.value: 1,
    AlertSeverity.LOW_STOCK.value: 2,
}


@dataclass(frozen=True)
class ReorderMetrics:
    """Thresholds derived from a daily demand rate."""

    safety_stock: int
    reorder_point: int
    reorder_qty: int
    lead_time_days: int
    buffer_days: int


@dataclass(frozen=True)
class Alert:
    """A variant at risk of running out, ready for a notifier."""

    sku: str
    severity: str
    current_stock: Decimal
    daily_rate: Decimal
    days_of_stock: int
    safety_stock: int
    suggested_reorder_point: int
    reorder_qty: int
    suggested_order: int
    lead_time_days: int
    reorder_point: int = 0  # configured on the variant, may differ from the computed one
    variant_id: int | None = None
    product_id: int | None = None
    product_name: str = ''
    moq_adjustment: int = 0

    def with_order(self, suggested_order: int) -> 'Alert':
        """Copy with a new suggested order, recording the change as MOQ adjustment."""
        return replace(
            self,
            suggested_order=suggested_order,
            moq_adjustment=suggested_order - self.suggested_order + self.moq_adjustment,
        )

    def as_dict(self) -> dict:
        return {
            k: str(v) if isinstance(v, Decimal) else v
            for k, v in asdict(self).items()
        }


def reorder_metrics(daily_rate, lead_time_days: int, buffer_days: int) -> ReorderMetrics:
    """
    Safety stock, reorder point and reorder quantity for a demand rate.

    reorder_point >= safety_stock always, since the lead time term is
    non-negative.

    Raises:
        StockError('INVALID_QUANTITY'): If any input is negative
    """
    rate = as_decimal(daily_rate)
    if rate < 0 or lead_time_days < 0 or buffer_days < 0:
        raise StockError(
            'INVALID_QUANTITY',
            daily_rate=rate,
            lead_time_days=lead_time_days,
            buffer_days=buffer_days,
        )

    safety_stock = math.ceil(rate * buffer_days)
    return ReorderMetrics(
        safety_stock=safety_stock,
        reorder_point=math.ceil(rate * lead_time_days + safety_stock),
        reorder_qty=math.ceil(rate * (lead_time_days + buffer_days)),
        lead_time_days=lead_time_days,
        buffer_days=buffer_days,
    )


def effective_daily_rate(measured, reorder_point: int, lead_time_days: int, floor) -> Decimal:
    """
    Rate to plan with when history is thin.

    1. measured demand, if any
    2. configured reorder point spread over the lead time
    3. the configured floor, so nothing downstream divides by zero
    """
    rate = as_decimal(measured)
    if rate > 0:
        return rate
    if reorder_point > 0 and lead_time_days > 0:
        return Decimal(reorder_point) / Decimal(lead_time_days)
    return as_decimal(floor)


def classify_risk(current_stock, daily_rate, lead_time_days: int, buffer_days: int,
                reorder_point: int = 0, critical_days: int = 3, **identity) -> Alert | None:
    """
    Turn stock and demand into an alert, or None when stock is healthy.

    Alerts when stock <= 0, stock <= the configured or computed reorder
    point, stock <= safety stock, or the days of stock don't cover the
    lead time.

    Args:
        current_stock: Units on hand
        daily_rate: Positive demand rate (see effective_daily_rate)
        lead_time_days: Replenishment lead time
        buffer_days: Safety buffer
        reorder_point: Reorder point configured on the variant
        critical_days: Days of stock at or below which severity is critical
        **identity: sku, variant_id, product_id, product_name for the Alert
    """
    stock = as_decimal(current_stock)
    rate = as_decimal(daily_rate)
    if rate <= 0:
        raise StockError('INVALID_QUANTITY', daily_rate=rate)

    days_of_stock = math.floor(stock / rate)
    metrics = reorder_metrics(rate, lead_time_days, buffer_days)

    should_alert = (
        stock <= 0
        or stock <= reorder_point
        or stock <= metrics.reorder_point
        or stock <= metrics.safety_stock
        or days_of_stock <= lead_time_days
    )
    if not should_alert:
        return None

    if stock <= 0:
        severity = AlertSeverity.OUT_OF_STOCK
    elif days_of_stock <= critical_days:
        severity = AlertSeverity.CRITICAL
    else:
        severity = AlertSeverity.LOW_STOCK

    return Alert(
        sku=identity.get('sku', ''),
        severity=severity.value,
        current_stock=stock,
        daily_rate=rate,
        days_of_stock=days_of_stock,
        safety_stock=metrics.safety_stock,
        suggested_reorder_point=metrics.reorder_point,
        reorder_qty=metrics.reorder_qty,
        suggested_order=max(0, math.ceil(metrics.reorder_qty - stock)),
        lead_time_days=lead_time_days,
        reorder_point=reorder_point,
        variant_id=identity.get('variant_id'),
        product_id=identity.get('product_id'),
        product_name=identity.get('product_name', ''),
    )


def sort_alerts(alerts) -> list[Alert]:
    """Most urgent first: severity, then fewest days of stock."""
    return sorted(
        alerts,
        key=lambda a: (SEVERITY_RANK.get(a.severity, len(SEVERITY_RANK)), a.days_of_stock),
    )
