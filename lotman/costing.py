"""
Costing: batch depletion order, consumption and valuation.

Pure functions over batch objects (anything with ``received_at``,
``sequence``, ``received_quantity``, ``quantity``, ``unit_cost`` and
``log_consumption()``, i.e. lotman.models.Batch). Nothing here touches
the database or the movement ledger; the services persist the result.

Examples:
    A = 100 @ 10 (Jan 1), B = 50 @ 12 (Jan 5), 30 left on hand
    - FIFO: what is left came from B      -> 30 * 12 = 360
    - LIFO: what is left came from A      -> 30 * 10 = 300
    - WAC:  30 * (100*10 + 50*12) / 150   -> 320
"""

import logging
from decimal import Decimal

from lotman.exceptions import StockError
from lotman.models.enums import CostingMethod

logger = logging.getLogger('lotman')

ZERO = Decimal('0')


def as_decimal(value) -> Decimal:
    """Coerce ints, floats and strings to Decimal without binary noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def normalize_method(method) -> str:
    """Return a known costing method, falling back to FIFO."""
    if method in CostingMethod.values:
        return method
    return CostingMethod.FIFO


def consumption_order(batches, method=CostingMethod.FIFO) -> list:
    """
    Order batches for depletion.

    - FIFO: oldest receipt first
    - LIFO: newest receipt first
    - WAC:  the pool has one cost, so any stable order works; FIFO order is used

    Equal receipt dates keep insertion order (``sequence``). Tombstones
    stay in the result; the consumer skips them.

    Args:
        batches: Iterable of batches
        method: 'FIFO' | 'LIFO' | 'WAC' (anything else = FIFO)

    Returns:
        New list, input untouched
    """
    method = normalize_method(method)
    by_insertion = sorted(batches, key=lambda b: b.sequence)
    # list.sort is stable for reverse=True as well
    return sorted(
        by_insertion,
        key=lambda b: b.received_at,
        reverse=(method == CostingMethod.LIFO),
    )


def consume_batches(batches, requested, reference: str, when=None) -> Decimal:
    """
    Deplete ``requested`` units from batches already in depletion order.

    Each touched batch has its quantity decremented, its consumed total
    incremented and a history entry appended. Batches are never removed.

    Args:
        batches: Batches in depletion order (see consumption_order)
        requested: Quantity to take
        reference: Transaction reference written to the batch history
        when: Timestamp of the history entries (default now)

    Returns:
        Shortfall: quantity that could not be taken (0 when satisfied)

    Raises:
        StockError('INVALID_QUANTITY'): If requested <= 0
    """
    remaining = as_decimal(requested)
    if remaining <= 0:
        raise StockError('INVALID_QUANTITY', requested=remaining)

    for batch in batches:
        if remaining <= 0:
            break
        if batch.quantity <= 0:
            continue
        taken = min(batch.quantity, remaining)
        batch.log_consumption(reference, taken, when)
        remaining -= taken

    return remaining


def restore_batches(batches, reference: str, when=None, limit=None) -> Decimal:
    """
    Give back what was drawn under ``reference`` to the batches it came from.

    Appends a negative history entry per batch, so the original draw
    stays visible. With ``limit``, at most that much is given back,
    latest batches in the given order first.

    Returns:
        Total quantity restored
    """
    remaining = None if limit is None else as_decimal(limit)
    restored = ZERO
    for batch in reversed(list(batches)):
        if remaining is not None and remaining <= 0:
            break
        net = batch.consumed_by(reference)
        if net <= 0:
            continue
        if remaining is not None:
            net = min(net, remaining)
            remaining -= net
        batch.log_consumption(reference, -net, when)
        restored += net
    return restored


def valuate(stock_on_hand, batches, method=CostingMethod.FIFO) -> Decimal:
    """
    Monetary value of the stock on hand.

    FIFO and LIFO value what the batches still hold: FIFO walks the
    remaining quantities newest receipt first, LIFO oldest first, taking
    ``stock_on_hand`` from each at its own unit cost. WAC blends every
    batch ever received (tombstones included).

    Args:
        stock_on_hand: Units on hand (sum of batch quantities)
        batches: All batches of the variant
        method: 'FIFO' | 'LIFO' | 'WAC' (anything else = FIFO)

    Returns:
        Decimal value; 0 when there is no stock, or when stock exists but
        no batch backs it (logged as an integrity fault)
    """
    on_hand = as_decimal(stock_on_hand)
    if on_hand <= 0:
        return ZERO

    batches = list(batches)
    if not batches:
        logger.warning(
            "stock.valuation.missing_batches",
            extra={"stock_on_hand": str(on_hand)},
        )
        return ZERO

    method = normalize_method(method)

    if method == CostingMethod.WAC:
        total_qty = sum((b.received_quantity for b in batches), ZERO)
        if total_qty <= 0:
            return ZERO
        total_cost = sum((b.received_quantity * b.unit_cost for b in batches), ZERO)
        return on_hand * total_cost / total_qty

    # Oldest receipt first; FIFO has kept the newest, so walk those first
    layers = consumption_order(batches, CostingMethod.FIFO)
    if method == CostingMethod.FIFO:
        layers.reverse()

    value = ZERO
    remaining = on_hand
    for batch in layers:
        if remaining <= 0:
            break
        taken = min(batch.quantity, remaining)
        value += taken * batch.unit_cost
        remaining -= taken

    if remaining > 0:
        logger.warning(
            "stock.valuation.unbacked_quantity",
            extra={"stock_on_hand": str(on_hand), "unbacked": str(remaining)},
        )

    return value
