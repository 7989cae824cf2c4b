"""
Ledger audit: read-only consistency report.

Checks, per variant:
- each movement starts where the previous one ended
- new_stock == previous_stock + quantity
- the last balance equals the batch total
- every batch: quantity >= 0, quantity + consumed == received,
  history sums to consumed

Nothing is repaired. A finding means data was written around the
engine (raw SQL, fixtures, imports) and needs a human decision.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from lotman.costing import ZERO
from lotman.models.product import Variant

logger = logging.getLogger('lotman')


@dataclass(frozen=True)
class LedgerIssue:
    """One inconsistency found by the audit."""

    kind: str  # chain | arithmetic | balance | batch_negative | batch_balance | batch_history
    sku: str
    expected: Decimal
    found: Decimal
    movement_id: int | None = None
    batch_id: int | None = None

    def __str__(self) -> str:
        where = "variant"
        if self.movement_id:
            where = f"movement {self.movement_id}"
        elif self.batch_id:
            where = f"batch {self.batch_id}"
        return f"{self.sku} {self.kind} at {where}: expected {self.expected}, found {self.found}"


class StockAudit:
    """Ledger consistency checks."""

    @classmethod
    def audit(cls, variant) -> list[LedgerIssue]:
        """Audit one variant. Empty list = consistent."""
        issues = []
        sku = variant.sku

        balance = ZERO
        for movement in variant.movements.chronological():
            if movement.previous_stock != balance:
                issues.append(LedgerIssue('chain', sku, balance, movement.previous_stock, movement_id=movement.pk))
            expected_new = movement.previous_stock + movement.quantity
            if movement.new_stock != expected_new:
                issues.append(LedgerIssue('arithmetic', sku, expected_new, movement.new_stock, movement_id=movement.pk))
            balance = movement.new_stock

        on_hand = ZERO
        for batch in variant.batches.all():
            on_hand += batch.quantity
            if batch.quantity < 0:
                issues.append(LedgerIssue('batch_negative', sku, ZERO, batch.quantity, batch_id=batch.pk))
            if batch.quantity + batch.quantity_consumed != batch.received_quantity:
                issues.append(LedgerIssue(
                    'batch_balance', sku, batch.received_quantity,
                    batch.quantity + batch.quantity_consumed, batch_id=batch.pk,
                ))
            logged = sum((Decimal(e['quantity']) for e in batch.history), ZERO)
            if logged != batch.quantity_consumed:
                issues.append(LedgerIssue('batch_history', sku, batch.quantity_consumed, logged, batch_id=batch.pk))

        if balance != on_hand:
            issues.append(LedgerIssue('balance', sku, on_hand, balance))

        for issue in issues:
            logger.error(
                "stock.audit.issue",
                extra={
                    "sku": issue.sku,
                    "kind": issue.kind,
                    "expected": str(issue.expected),
                    "found": str(issue.found),
                    "movement_id": issue.movement_id,
                    "batch_id": issue.batch_id,
                },
            )
        return issues

    @classmethod
    def audit_all(cls, variants=None) -> dict[str, list[LedgerIssue]]:
        """
        Audit many variants (default: all).

        Returns:
            {sku: issues} for variants with at least one issue
        """
        if variants is None:
            variants = Variant.objects.order_by('sku')
        report = {}
        for variant in variants:
            issues = cls.audit(variant)
            if issues:
                report[variant.sku] = issues
        return report
