"""
Demand Source Protocol: Interface for historical demand.

Lotman defines this protocol. The default implementation reads sales from
the movement ledger (lotman.adapters.ledger); an order-management system
can provide its own to feed demand estimation from its order history.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Protocol, runtime_checkable


@dataclass(frozen=True)
class DemandRecord:
    """One demand event of a variant."""

    variant_id: int
    quantity: Decimal
    date: datetime
    cancelled: bool = False  # cancelled orders never count as demand


@runtime_checkable
class DemandSource(Protocol):
    """
    Protocol for historical demand.

    Implementations return demand events, not net stock movements:
    backordered quantities count, returns and adjustments don't.
    """

    def demand_for(self, variant, since: datetime) -> Iterable[DemandRecord]:
        """
        Demand events of a variant at or after ``since``.

        Args:
            variant: Variant
            since: Start of the window (aware datetime)

        Returns:
            Iterable of DemandRecord; cancelled records may be included,
            flagged, and are ignored by the estimator
        """
        ...
