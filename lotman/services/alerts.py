"""
Stock alerts: classify variants at risk of running out.

Usage:
    from lotman import stock

    # Run periodically (celery beat, cron) or after stock changes
    alerts = stock.risk_alerts()
    alerts = stock.check_after_sale([variant])

Alerts are delivered to the configured LOTMAN['ALERT_NOTIFIER'] and
broadcast with the ``stock_alert_triggered`` signal.
"""

import logging

from lotman.adapters import get_alert_notifier
from lotman.conf import lotman_settings
from lotman.models.enums import ProductStatus, VariantStatus
from lotman.models.product import Product
from lotman.reorder import Alert, classify_risk, sort_alerts
from lotman.services.demand import StockDemand
from lotman.signals import stock_alert_triggered

logger = logging.getLogger('lotman')


class StockAlerts:
    """Stock risk alert methods."""

    @classmethod
    def classify(cls, variant, daily_rate=None, window_days: int | None = None) -> Alert | None:
        """
        Risk alert of one variant, or None when healthy or alerts are off.

        Args:
            variant: Variant
            daily_rate: Precomputed effective rate (default: StockDemand.daily_rate)
            window_days: Demand window when the rate is computed here
        """
        product = variant.product
        if not product.enable_stock_alerts:
            return None

        if daily_rate is None:
            daily_rate = StockDemand.daily_rate(variant, window_days)

        return classify_risk(
            variant.stock_on_hand,
            daily_rate,
            variant.effective_lead_time,
            product.effective_buffer_days,
            reorder_point=variant.reorder_point,
            critical_days=lotman_settings.CRITICAL_DAYS,
            sku=variant.sku,
            variant_id=variant.pk,
            product_id=product.pk,
            product_name=product.name,
        )

    @classmethod
    def risk_alerts(cls, window_days: int | None = None, notify: bool = True,
                    product=None) -> list[Alert]:
        """
        Sweep active products and return every variant at risk.

        Suggested orders are adjusted to each product's MOQ.

        Args:
            window_days: Demand window (default: per variant, see StockDemand)
            notify: Deliver the alerts and send the signal
            product: Restrict the sweep to one product

        Returns:
            Alerts sorted by severity, then fewest days of stock
        """
        from lotman.services.planning import StockPlanning

        products = Product.objects.filter(status=ProductStatus.ACTIVE, enable_stock_alerts=True)
        if product is not None:
            products = products.filter(pk=product.pk)

        alerts = []
        for p in products:
            product_alerts, _ = StockPlanning.assess_product(p, window_days)
            alerts.extend(product_alerts)

        alerts = sort_alerts(alerts)
        if notify:
            cls._deliver(alerts)
        return alerts

    @classmethod
    def check_after_sale(cls, variants, notify: bool = True) -> list[Alert]:
        """
        Alert check for the variants a sale just touched.

        No MOQ adjustment: a single sale doesn't warrant a product-wide plan.
        """
        alerts = []
        for variant in variants:
            if variant.status != VariantStatus.ACTIVE:
                continue
            alert = cls.classify(variant)
            if alert is not None:
                alerts.append(alert)

        alerts = sort_alerts(alerts)
        if notify:
            cls._deliver(alerts)
        return alerts

    @classmethod
    def _deliver(cls, alerts: list[Alert]) -> None:
        if not alerts:
            return

        for alert in alerts:
            logger.warning(
                "stock.alert.triggered",
                extra={
                    "sku": alert.sku,
                    "severity": alert.severity,
                    "current_stock": str(alert.current_stock),
                    "days_of_stock": alert.days_of_stock,
                    "suggested_order": alert.suggested_order,
                },
            )

        get_alert_notifier().notify(alerts)
        stock_alert_triggered.send(sender=cls, alerts=alerts)
