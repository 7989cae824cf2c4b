"""
Stock planning: reorder thresholds and replenishment orders.

Builds on demand estimation (StockDemand) and risk classification
(StockAlerts); nothing here writes the ledger.
"""

import logging

from django.db import transaction

from lotman.allocation import Line, ReplenishmentPlan, allocate_with_moq
from lotman.exceptions import StockError
from lotman.models.enums import CostingMethod, VariantStatus
from lotman.models.product import Product
from lotman.reorder import ReorderMetrics, reorder_metrics
from lotman.services.demand import StockDemand

logger = logging.getLogger('lotman')


class StockPlanning:
    """Replenishment planning methods."""

    @classmethod
    def reorder_metrics(cls, variant, window_days: int | None = None) -> ReorderMetrics:
        """
        Safety stock, reorder point and reorder quantity of a variant.

        Uses the variant's effective demand rate, its lead time (falling
        back to the product's) and the product's reorder buffer.
        """
        return reorder_metrics(
            StockDemand.daily_rate(variant, window_days),
            variant.effective_lead_time,
            variant.product.effective_buffer_days,
        )

    @classmethod
    def replenishment_plan(cls, product, window_days: int | None = None) -> ReplenishmentPlan:
        """
        Order for one product, split across its variants.

        Variants flagged at risk get their suggested order, scaled up to
        the product MOQ by largest remainder. If the flagged variants
        need nothing, the MOQ is backfilled from the product's unflagged variants
        by demand rate. A product with no flagged variant gets an empty
        plan.

        Returns:
            ReplenishmentPlan keyed by variant SKU
        """
        _, plan = cls.assess_product(product, window_days)
        return plan

    @classmethod
    def assess_product(cls, product, window_days: int | None = None):
        """
        Risk alerts and replenishment plan of a product, from one demand read.

        Returns:
            (alerts, plan), alerts in variant order with suggested orders
            already adjusted to the plan
        """
        from lotman.services.alerts import StockAlerts

        flagged, candidates, alerts = [], [], []
        for variant in product.variants.filter(status=VariantStatus.ACTIVE).select_related('product'):
            rate = StockDemand.daily_rate(variant, window_days)
            alert = StockAlerts.classify(variant, daily_rate=rate)
            if alert is None:
                candidates.append(Line(variant.sku, 0, rate))
            else:
                flagged.append(Line(variant.sku, alert.suggested_order, rate))
                alerts.append(alert)

        allocations = allocate_with_moq(flagged, candidates, product.min_order_qty)
        plan = ReplenishmentPlan(
            product_id=product.pk,
            min_order_qty=product.min_order_qty,
            total_order=sum(a.allocated for a in allocations),
            allocations=allocations,
        )

        per_variant = plan.per_variant
        alerts = [a.with_order(per_variant.get(a.sku, a.suggested_order)) for a in alerts]

        if plan.total_order:
            logger.info(
                "stock.replenishment.planned",
                extra={
                    "product_id": product.pk,
                    "total_order": plan.total_order,
                    "min_order_qty": product.min_order_qty,
                    "per_variant": per_variant,
                },
            )
        return alerts, plan

    @classmethod
    def change_costing_method(cls, product, method: str) -> Product:
        """
        Switch a product's costing method.

        Allowed only while no batch of the product has been drawn on:
        past consumption was priced under the old method.

        Raises:
            StockError('INVALID_COSTING_METHOD'): Unknown method
            StockError('COSTING_METHOD_LOCKED'): Consumption already recorded
        """
        if method not in CostingMethod.values:
            raise StockError('INVALID_COSTING_METHOD', requested=method)

        with transaction.atomic():
            locked = Product.objects.select_for_update().get(pk=product.pk)
            previous = locked.costing_method
            if previous == method:
                return locked
            locked.costing_method = method
            locked.save(update_fields=['costing_method', 'updated_at'])

        product.costing_method = method
        logger.info(
            "stock.costing_method.changed",
            extra={"product_id": product.pk, "from": previous, "to": method},
        )
        return locked
