"""
Replenishment allocation: split a product order across its variants.

A product-level minimum order quantity (MOQ) applies to the sum of the
variant orders. The order total is ``max(sum(recommended), MOQ)`` and it
is apportioned with the largest-remainder (Hamilton) method, so the
parts are whole units that always add up to the total.

    MOQ 100, recommended 42 / 21 / 7 (sum 70)
    shares 0.6 / 0.3 / 0.1 of 100 -> 60 / 30 / 10

When no flagged variant carries a positive recommendation there is no
proportion to scale, and the MOQ is backfilled from the product's other
variants, fastest movers first, in proportion to their demand rate.
"""

import math
from dataclasses import dataclass, field
from decimal import Decimal
from fractions import Fraction
from typing import Any, Sequence

from lotman.costing import as_decimal
from lotman.exceptions import StockError


@dataclass(frozen=True)
class Line:
    """One variant entering the allocation."""

    key: Any
    recommended: int = 0
    daily_rate: Decimal = Decimal('0')


@dataclass(frozen=True)
class Allocation:
    key: Any
    recommended: int
    allocated: int
    backfilled: bool = False

    @property
    def moq_adjustment(self) -> int:
        return self.allocated - self.recommended


@dataclass
class ReplenishmentPlan:
    """Order for one product, broken down per variant."""

    product_id: Any
    min_order_qty: int
    total_order: int
    allocations: list[Allocation] = field(default_factory=list)

    @property
    def per_variant(self) -> dict:
        return {a.key: a.allocated for a in self.allocations}


def largest_remainder(target: int, weights: Sequence) -> list[int]:
    """
    Apportion ``target`` whole units proportionally to ``weights``.

    Each part gets the floor of its exact quota; the units left over go
    one each to the largest fractional remainders, ties to the earlier
    position. All-zero weights split equally.

    Args:
        target: Non-negative number of units
        weights: Non-negative weights, one per part

    Returns:
        Allocations in the order of ``weights``, summing to ``target``
    """
    if target < 0:
        raise StockError('INVALID_QUANTITY', requested=target)
    if not weights:
        if target:
            raise StockError('INVALID_QUANTITY', requested=target, parts=0)
        return []

    exact = [Fraction(as_decimal(w)) for w in weights]
    if any(w < 0 for w in exact):
        raise StockError('INVALID_QUANTITY', weights=[str(w) for w in weights])

    total = sum(exact)
    if total == 0:
        exact = [Fraction(1)] * len(exact)
        total = Fraction(len(exact))

    quotas = [target * w / total for w in exact]
    parts = [math.floor(q) for q in quotas]
    leftover = target - sum(parts)

    by_remainder = sorted(range(len(quotas)), key=lambda i: (-(quotas[i] - parts[i]), i))
    for i in by_remainder[:leftover]:
        parts[i] += 1

    assert sum(parts) == target, f"allocated {sum(parts)} of {target}"
    return parts


def allocate_with_moq(flagged: Sequence[Line], candidates: Sequence[Line] = (),
                      min_order_qty: int = 0) -> list[Allocation]:
    """
    Allocate ``max(sum(recommended), min_order_qty)`` across variants.

    Args:
        flagged: Variants flagged for reorder, with their recommendation
        candidates: The product's other variants, used for backfill only
        min_order_qty: Product MOQ (0 = none)

    Returns:
        One Allocation per flagged line (in input order), followed by
        backfilled candidates ranked by demand rate. Empty when nothing
        is flagged.
    """
    if min_order_qty < 0 or any(line.recommended < 0 for line in flagged):
        raise StockError('INVALID_QUANTITY', min_order_qty=min_order_qty)

    if not flagged:
        return []

    recommended_total = sum(line.recommended for line in flagged)
    target = max(recommended_total, min_order_qty)

    if recommended_total > 0:
        parts = largest_remainder(target, [line.recommended for line in flagged])
        result = [
            Allocation(line.key, line.recommended, part)
            for line, part in zip(flagged, parts)
        ]
    else:
        result = _backfill(flagged, candidates, target)

    assert sum(a.allocated for a in result) == target, "allocation does not reconcile"
    return result


def _backfill(flagged: Sequence[Line], candidates: Sequence[Line], target: int) -> list[Allocation]:
    """
    Spread the whole MOQ over the unflagged variants by demand rate.

    The flagged variants keep their zero order unless the product has no
    other variant to pull in, in which case they share the MOQ themselves.
    """
    if target == 0:
        return [Allocation(line.key, line.recommended, 0) for line in flagged]

    if not candidates:
        parts = largest_remainder(target, [line.daily_rate for line in flagged])
        return [
            Allocation(line.key, line.recommended, part, backfilled=part > 0)
            for line, part in zip(flagged, parts)
        ]

    result = [Allocation(line.key, line.recommended, 0) for line in flagged]
    ranked = sorted(candidates, key=lambda line: -as_decimal(line.daily_rate))
    parts = largest_remainder(target, [line.daily_rate for line in ranked])
    result.extend(
        Allocation(line.key, line.recommended, part, backfilled=True)
        for line, part in zip(ranked, parts)
        if part > 0
    )
    return result
