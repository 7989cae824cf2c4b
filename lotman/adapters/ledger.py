"""
Ledger Demand Source: demand read from the movement ledger.

Default DemandSource. Each outbound sale movement is one demand event:
the quantity actually sold plus whatever was backordered. Movements of
cancelled orders come back flagged so the estimator can drop them.

Settings:
    LOTMAN = {
        "DEMAND_SOURCE": "lotman.adapters.ledger.LedgerDemandSource",
    }
"""

from __future__ import annotations

from decimal import Decimal

from lotman.models.enums import MovementKind, OrderStatus
from lotman.models.movement import Movement
from lotman.protocols.demand import DemandRecord


class LedgerDemandSource:
    """DemandSource backed by OUTBOUND movements."""

    def demand_for(self, variant, since):
        movements = (
            Movement.objects.filter(
                variant_id=variant.pk,
                kind=MovementKind.OUTBOUND,
                reverses__isnull=True,
                timestamp__gte=since,
            )
            .select_related('order')
            .order_by('timestamp', 'id')
        )
        for movement in movements:
            backordered = Decimal(movement.metadata.get('backordered', '0'))
            yield DemandRecord(
                variant_id=movement.variant_id,
                quantity=-movement.quantity + backordered,
                date=movement.timestamp,
                cancelled=(
                    movement.order is not None
                    and movement.order.status == OrderStatus.CANCELLED
                ),
            )
