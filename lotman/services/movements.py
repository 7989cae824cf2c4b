"""
Stock movements: state-changing operations.

Every mutation follows the same steps inside one transaction:

1. lock the variant row (select_for_update)
2. read the batch total
3. create or drain batches
4. append the Movement, checking it against the ledger and the batches

Nothing else writes batches or movements, so the running balance of the
ledger and the batch total cannot drift apart.
"""

import logging
import uuid
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from lotman.costing import (
    ZERO,
    as_decimal,
    consume_batches,
    consumption_order,
    restore_batches,
)
from lotman.exceptions import StockError
from lotman.models.batch import Batch
from lotman.models.enums import MovementKind, OrderKind, OrderStatus
from lotman.models.movement import Movement
from lotman.models.order import InventoryOrder
from lotman.models.product import Variant

logger = logging.getLogger('lotman')

QUANTITY_PLACES = Decimal('0.001')
COST_PLACES = Decimal('0.0001')


# ══════════════════════════════════════════════════════════════
# LEDGER
# ══════════════════════════════════════════════════════════════

def batch_total(variant) -> Decimal:
    """Stock on hand read straight from the batch rows."""
    return Batch.objects.filter(variant_id=variant.pk).aggregate(
        t=Coalesce(Sum('quantity'), Decimal('0'))
    )['t']


def latest_movement(variant) -> Movement | None:
    """Most recent ledger entry of a variant."""
    return Movement.objects.filter(variant_id=variant.pk).order_by('-timestamp', '-id').first()


def append_movement(variant, kind, quantity, stock_before, **fields) -> Movement:
    """
    Append a movement after the batch mutation it describes.

    Must run inside the mutation's transaction, with the variant locked.

    Args:
        variant: Locked variant
        kind: MovementKind
        quantity: Signed quantity of the transition
        stock_before: Batch total read before the mutation
        **fields: Other Movement fields (order, batch, reason, ...)

    Raises:
        StockError('LEDGER_MISMATCH'): If the previous ledger balance is
            not the batch total before the mutation, or the new balance
            is not the batch total after it
    """
    latest = latest_movement(variant)
    previous = latest.new_stock if latest else ZERO
    new = previous + quantity
    stock_after = batch_total(variant)

    if previous != stock_before or new != stock_after:
        logger.error(
            "stock.ledger.mismatch",
            extra={
                "variant": variant.sku,
                "kind": kind,
                "previous_stock": str(previous),
                "batches_before": str(stock_before),
                "new_stock": str(new),
                "batches_after": str(stock_after),
            },
        )
        raise StockError(
            'LEDGER_MISMATCH',
            variant=variant.sku,
            previous_stock=previous,
            batches_before=stock_before,
            new_stock=new,
            batches_after=stock_after,
        )

    return Movement.objects.create(
        variant=variant,
        kind=kind,
        quantity=quantity,
        previous_stock=previous,
        new_stock=new,
        **fields
    )


# ══════════════════════════════════════════════════════════════
# INTERNALS
# ══════════════════════════════════════════════════════════════

def _lock_variant(variant) -> Variant:
    return Variant.objects.select_for_update(of=('self',)).select_related('product').get(pk=variant.pk)


def _resolve_order(order_ref, kind) -> InventoryOrder | None:
    """
    Get or create the order a movement belongs to, refusing cancelled ones.

    The order row is locked before the variant row, as in cancel_order().
    """
    if not order_ref:
        return None
    order, _ = InventoryOrder.objects.get_or_create(
        reference=order_ref,
        defaults={'kind': kind},
    )
    order = InventoryOrder.objects.select_for_update().get(pk=order.pk)
    if order.is_cancelled:
        raise StockError('ORDER_CANCELLED', order=order_ref)
    return order


def _quantity(quantity) -> Decimal:
    """Signed quantity, refused when finer than the stored 3 places."""
    quantity = as_decimal(quantity)
    if quantity != quantity.quantize(QUANTITY_PLACES):
        raise StockError('INVALID_QUANTITY', requested=quantity)
    return quantity


def _positive(quantity) -> Decimal:
    quantity = _quantity(quantity)
    if quantity <= 0:
        raise StockError('INVALID_QUANTITY', requested=quantity)
    return quantity


def _unit_cost(unit_cost) -> Decimal:
    unit_cost = as_decimal(unit_cost)
    if unit_cost < 0 or unit_cost != unit_cost.quantize(COST_PLACES):
        raise StockError('INVALID_QUANTITY', unit_cost=unit_cost)
    return unit_cost


def _save_drawn(batches, before: dict) -> Decimal:
    """Persist batches whose quantity changed. Returns the cost of the change."""
    cost = ZERO
    for batch in batches:
        taken = before[batch.pk] - batch.quantity
        if taken:
            batch.save(update_fields=['quantity', 'quantity_consumed', 'history'])
            cost += taken * batch.unit_cost
    return cost


def _draw(variant, quantity, reference, batches=None):
    """
    Drain ``quantity`` from the variant's batches in costing order.

    Returns:
        (taken, shortfall, unit_cost) where unit_cost is the average cost
        of what was taken
    """
    if batches is None:
        batches = list(variant.batches.all())
    ordered = consumption_order(batches, variant.product.costing_method)
    before = {b.pk: b.quantity for b in ordered}

    shortfall = consume_batches(ordered, quantity, reference, timezone.now())
    taken = quantity - shortfall
    cost = _save_drawn(ordered, before)

    unit_cost = (cost / taken).quantize(COST_PLACES) if taken else ZERO
    return taken, shortfall, unit_cost


def _new_reference(kind) -> str:
    return f"{kind}:{uuid.uuid4().hex[:12]}"


class StockMovements:
    """State-changing stock movement methods."""

    # ══════════════════════════════════════════════════════════════
    # INBOUND
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def receive_purchase(cls, variant, quantity, unit_cost, batch_ref='',
                         received_at=None, order_ref=None, supplier='',
                         expiry_date=None, user=None, reason='Purchase receipt',
                         **metadata) -> Movement:
        """
        Receive purchased stock as a new batch.

        Args:
            variant: Variant receiving stock
            quantity: Units received (> 0)
            unit_cost: Purchase cost per unit (>= 0)
            batch_ref: Lot code
            received_at: Receipt date used for FIFO/LIFO order (default now)
            order_ref: Purchase order reference
            supplier: Supplier name
            expiry_date: Optional expiry date of the lot

        Returns:
            The inbound Movement (movement.batch is the new batch)

        Raises:
            StockError('INVALID_QUANTITY'): If quantity <= 0, unit_cost < 0, or
                either is finer than the stored precision
            StockError('ORDER_CANCELLED'): If the order was cancelled
        """
        quantity = _positive(quantity)
        unit_cost = _unit_cost(unit_cost)

        with transaction.atomic():
            order = _resolve_order(order_ref, OrderKind.PURCHASE)
            locked = _lock_variant(variant)
            movement = cls._receive(
                locked, MovementKind.INBOUND, quantity, unit_cost,
                batch_ref=batch_ref, received_at=received_at, order=order,
                supplier=supplier, expiry_date=expiry_date, user=user,
                reason=reason, metadata=metadata,
            )

            if locked.incoming > 0:
                locked.incoming = max(ZERO, locked.incoming - quantity)
                locked.save(update_fields=['incoming', 'updated_at'])

        logger.info(
            "stock.receive",
            extra={
                "variant": locked.sku,
                "qty": str(quantity),
                "unit_cost": str(unit_cost),
                "batch": movement.batch.reference,
                "order": order_ref,
                "movement_id": movement.pk,
            },
        )
        return movement

    @classmethod
    def record_return(cls, variant, quantity, unit_cost=None, order_ref=None,
                      batch_ref='', user=None, reason='Customer return') -> Movement:
        """
        Put returned goods back on hand as a new batch.

        unit_cost defaults to the variant's reference cost.
        """
        quantity = _positive(quantity)
        if unit_cost is not None:
            unit_cost = _unit_cost(unit_cost)

        with transaction.atomic():
            order = _resolve_order(order_ref, OrderKind.RETURN)
            locked = _lock_variant(variant)
            cost = locked.cost if unit_cost is None else unit_cost
            movement = cls._receive(
                locked, MovementKind.RETURN, quantity, cost,
                batch_ref=batch_ref or f"RET-{timezone.now():%Y%m%d%H%M%S}",
                order=order, supplier='Return', user=user, reason=reason,
            )

        logger.info(
            "stock.return",
            extra={"variant": locked.sku, "qty": str(quantity), "order": order_ref},
        )
        return movement

    # ══════════════════════════════════════════════════════════════
    # OUTBOUND
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def record_sale(cls, variant, quantity, order_ref=None, user=None,
                    reason='Sale') -> tuple[Movement, Decimal]:
        """
        Sell stock, draining batches in the product's costing order.

        When the batches can't cover the sale:
        - backorder not allowed: nothing is written
        - backorder allowed: what exists is sold, the rest is added to
          ``variant.committed`` and returned as unconsumed

        Returns:
            (movement, unconsumed)

        Raises:
            StockError('INSUFFICIENT_QUANTITY'): Short and no backorder
            StockError('ORDER_CANCELLED'): If the order was cancelled
        """
        quantity = _positive(quantity)
        reference = order_ref or _new_reference('sale')

        with transaction.atomic():
            order = _resolve_order(order_ref, OrderKind.SALE)
            locked = _lock_variant(variant)
            stock_before = batch_total(locked)

            taken, shortfall, unit_cost = _draw(locked, quantity, reference)

            if shortfall > 0 and not locked.allow_backorder:
                raise StockError(
                    'INSUFFICIENT_QUANTITY',
                    available=taken,
                    requested=quantity,
                    variant=locked.sku,
                )

            metadata = {}
            if shortfall > 0:
                locked.committed += shortfall
                locked.save(update_fields=['committed', 'updated_at'])
                metadata['backordered'] = str(shortfall)

            movement = append_movement(
                locked, MovementKind.OUTBOUND, -taken, stock_before,
                order=order, reference=reference, reason=reason,
                unit_cost=unit_cost, user=user, metadata=metadata,
            )

        logger.info(
            "stock.sale",
            extra={
                "variant": locked.sku,
                "qty": str(quantity),
                "unconsumed": str(shortfall),
                "order": order_ref,
                "movement_id": movement.pk,
            },
        )
        return movement, shortfall

    @classmethod
    def record_damage(cls, variant, quantity, reason, batch=None,
                      order_ref=None, user=None) -> Movement:
        """Write off damaged stock, from one batch or in costing order."""
        return cls._write_off(variant, MovementKind.DAMAGE, OrderKind.DAMAGE,
                              quantity, reason, batch, order_ref, user)

    @classmethod
    def record_expired(cls, variant, quantity, reason='Expired', batch=None,
                       order_ref=None, user=None) -> Movement:
        """Write off expired stock, usually from a specific batch."""
        return cls._write_off(variant, MovementKind.EXPIRED, OrderKind.EXPIRED,
                              quantity, reason, batch, order_ref, user)

    # ══════════════════════════════════════════════════════════════
    # ADJUSTMENT
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def record_adjustment(cls, variant, quantity, reason, order_ref=None,
                          unit_cost=None, batch_ref='', expiry_date=None,
                          user=None) -> Movement:
        """
        Inventory adjustment by a signed quantity.

        Positive: stock found, added as a synthetic batch (unit_cost
        defaults to the variant's reference cost).
        Negative: stock lost, drained in costing order. Adjustments never
        backorder.

        Raises:
            StockError('REASON_REQUIRED'): If reason is empty
            StockError('INVALID_QUANTITY'): If quantity == 0 or finer than
                3 decimal places
            StockError('INSUFFICIENT_QUANTITY'): If removing more than on hand
        """
        if not reason:
            raise StockError('REASON_REQUIRED')
        quantity = _quantity(quantity)
        if quantity == 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)
        if unit_cost is not None:
            unit_cost = _unit_cost(unit_cost)

        with transaction.atomic():
            order = _resolve_order(order_ref, OrderKind.ADJUSTMENT)
            locked = _lock_variant(variant)

            if quantity > 0:
                cost = locked.cost if unit_cost is None else unit_cost
                movement = cls._receive(
                    locked, MovementKind.ADJUSTMENT, quantity, cost,
                    batch_ref=batch_ref or f"ADJ-{timezone.now():%Y%m%d%H%M%S}",
                    order=order, supplier='Adjustment', expiry_date=expiry_date,
                    user=user, reason=reason,
                )
            else:
                movement = cls._issue(
                    locked, MovementKind.ADJUSTMENT, -quantity, reason,
                    order=order, order_ref=order_ref, user=user,
                )

        logger.info(
            "stock.adjust",
            extra={
                "variant": locked.sku,
                "delta": str(quantity),
                "reason": reason,
                "movement_id": movement.pk,
            },
        )
        return movement

    # ══════════════════════════════════════════════════════════════
    # CANCELLATION
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def cancel_order(cls, order_ref, user=None) -> list[Movement]:
        """
        Cancel an order and undo its ledger effects.

        Each movement of the order gets a compensating movement
        (``reverses`` set). Stock drawn by the order goes back to the
        batches it came from; batches the order received are drained.
        Backorders the order created are released from ``committed``.

        Returns:
            The compensating movements, oldest first

        Raises:
            StockError('ORDER_NOT_FOUND'): Unknown reference
            StockError('ORDER_CANCELLED'): Already cancelled
            StockError('BATCH_CONSUMED'): A batch received by the order
                was already drawn on by other transactions
        """
        with transaction.atomic():
            try:
                order = InventoryOrder.objects.select_for_update().get(reference=order_ref)
            except InventoryOrder.DoesNotExist:
                raise StockError('ORDER_NOT_FOUND', order=order_ref) from None

            if order.is_cancelled:
                raise StockError('ORDER_CANCELLED', order=order_ref)

            originals = list(
                order.movements.filter(reverses__isnull=True).order_by('variant_id', 'timestamp', 'id')
            )

            compensations = []
            variant = None
            for original in originals:
                if variant is None or variant.pk != original.variant_id:
                    variant = _lock_variant(original.variant)
                compensation = cls._compensate(variant, order, original, user)
                if compensation is not None:
                    compensations.append(compensation)

            order.status = OrderStatus.CANCELLED
            order.cancelled_at = timezone.now()
            order.save(update_fields=['status', 'cancelled_at'])

        logger.info(
            "stock.order.cancelled",
            extra={
                "order": order_ref,
                "reversed": len(compensations),
            },
        )
        return compensations

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _receive(cls, variant, kind, quantity, unit_cost, batch_ref='', received_at=None,
                 order=None, supplier='', expiry_date=None, user=None, reason='',
                 metadata=None) -> Movement:
        """Create a batch and its movement. Caller holds the lock."""
        stock_before = batch_total(variant)
        batch = Batch.objects.create(
            variant=variant,
            reference=batch_ref or '',
            supplier=supplier or '',
            unit_cost=unit_cost,
            received_quantity=quantity,
            quantity=quantity,
            received_at=received_at or timezone.now(),
            expiry_date=expiry_date,
            order=order if kind == MovementKind.INBOUND else None,
        )
        return append_movement(
            variant, kind, quantity, stock_before,
            order=order,
            reference=order.reference if order else batch.reference,
            reason=reason,
            batch=batch,
            unit_cost=unit_cost,
            user=user,
            metadata=metadata or {},
        )

    @classmethod
    def _issue(cls, variant, kind, quantity, reason, batch=None, order=None,
               order_ref=None, user=None) -> Movement:
        """Drain batches without backorder. Caller holds the lock."""
        reference = order_ref or _new_reference(kind)
        stock_before = batch_total(variant)

        batches = None
        if batch is not None:
            batches = [Batch.objects.get(pk=batch.pk, variant_id=variant.pk)]

        taken, shortfall, unit_cost = _draw(variant, quantity, reference, batches)
        if shortfall > 0:
            raise StockError(
                'INSUFFICIENT_QUANTITY',
                available=taken,
                requested=quantity,
                variant=variant.sku,
            )

        return append_movement(
            variant, kind, -taken, stock_before,
            order=order, reference=reference, reason=reason,
            batch=batch, unit_cost=unit_cost, user=user,
        )

    @classmethod
    def _write_off(cls, variant, kind, order_kind, quantity, reason, batch,
                   order_ref, user) -> Movement:
        if not reason:
            raise StockError('REASON_REQUIRED')
        quantity = _positive(quantity)

        with transaction.atomic():
            order = _resolve_order(order_ref, order_kind)
            locked = _lock_variant(variant)
            movement = cls._issue(locked, kind, quantity, reason, batch=batch,
                                  order=order, order_ref=order_ref, user=user)

        logger.info(
            f"stock.{kind}",
            extra={
                "variant": locked.sku,
                "qty": str(quantity),
                "batch": batch.reference if batch else None,
                "reason": reason,
            },
        )
        return movement

    @classmethod
    def _compensate(cls, variant, order, original, user) -> Movement | None:
        """Undo one movement of a cancelled order. Caller holds the lock."""
        backordered = as_decimal(original.metadata.get('backordered', '0'))
        if backordered > 0:
            variant.committed = max(ZERO, variant.committed - backordered)
            variant.save(update_fields=['committed', 'updated_at'])

        if original.quantity == 0:
            return None

        stock_before = batch_total(variant)
        reason = f"Cancelled order {order.reference}"

        if original.quantity < 0:
            # Give back what was drawn, to the batches it came from
            batches = list(variant.batches.all())
            before = {b.pk: b.quantity for b in batches}
            restored = restore_batches(batches, original.reference, timezone.now(), limit=-original.quantity)
            if restored != -original.quantity:
                raise StockError(
                    'LEDGER_MISMATCH',
                    variant=variant.sku,
                    order=order.reference,
                    expected=-original.quantity,
                    restored=restored,
                )
            _save_drawn(batches, before)
        else:
            batch = Batch.objects.get(pk=original.batch_id)
            if batch.quantity < original.quantity:
                raise StockError(
                    'BATCH_CONSUMED',
                    batch=batch.reference,
                    order=order.reference,
                    remaining=batch.quantity,
                    received=original.quantity,
                )
            batch.log_consumption(order.reference, original.quantity, timezone.now())
            batch.save(update_fields=['quantity', 'quantity_consumed', 'history'])

        return append_movement(
            variant, MovementKind.ADJUSTMENT, -original.quantity, stock_before,
            order=order,
            reference=original.reference,
            reason=reason,
            batch=original.batch,
            unit_cost=original.unit_cost,
            reverses=original,
            user=user,
        )
