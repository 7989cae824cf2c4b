"""
Tests for the stock service write path and queries.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from lotman import StockError, stock
from lotman.models import Batch, CostingMethod, InventoryOrder, Movement, OrderStatus
from lotman.tests.conftest import jan


pytestmark = pytest.mark.django_db


def assert_chain(variant):
    """Every movement starts where the previous one ended, and ends on the batches."""
    balance = Decimal('0')
    for movement in stock.history(variant):
        assert movement.previous_stock == balance
        assert movement.new_stock == movement.previous_stock + movement.quantity
        balance = movement.new_stock
    assert balance == stock.stock_on_hand(variant)


class TestReceivePurchase:
    """Tests for stock.receive_purchase()."""

    def test_creates_batch_and_movement(self, variant):
        movement = stock.receive_purchase(variant, 100, Decimal('10'), batch_ref='A', supplier='Acme')

        batch = movement.batch
        assert batch.received_quantity == Decimal('100')
        assert batch.quantity == Decimal('100')
        assert batch.supplier == 'Acme'
        assert movement.kind == 'in'
        assert movement.previous_stock == Decimal('0')
        assert movement.new_stock == Decimal('100')
        assert stock.stock_on_hand(variant) == Decimal('100')

    def test_sequence_breaks_date_ties(self, variant):
        first = stock.receive_purchase(variant, 1, 1, received_at=jan(2)).batch
        second = stock.receive_purchase(variant, 1, 1, received_at=jan(2)).batch

        assert second.sequence == first.sequence + 1

    def test_purchase_order_linked(self, variant):
        movement = stock.receive_purchase(variant, 10, 5, order_ref='PO-1')

        order = InventoryOrder.objects.get(reference='PO-1')
        assert order.kind == 'purchase'
        assert movement.order == order
        assert movement.batch.order == order

    def test_reduces_incoming(self, variant):
        variant.incoming = Decimal('20')
        variant.save()

        stock.receive_purchase(variant, 15, 5)

        variant.refresh_from_db()
        assert variant.incoming == Decimal('5')

    @pytest.mark.parametrize('quantity, cost', [(0, 1), (-5, 1), (5, -1)])
    def test_invalid_input(self, variant, quantity, cost):
        with pytest.raises(StockError) as exc:
            stock.receive_purchase(variant, quantity, cost)

        assert exc.value.code == 'INVALID_QUANTITY'
        assert not Batch.objects.exists()

    @pytest.mark.parametrize('quantity, cost', [
        (Decimal('1.0005'), Decimal('10')),
        (Decimal('1'), Decimal('10.00005')),
    ])
    def test_precision_beyond_storage_refused(self, variant, quantity, cost):
        with pytest.raises(StockError) as exc:
            stock.receive_purchase(variant, quantity, cost)

        assert exc.value.code == 'INVALID_QUANTITY'
        assert not Batch.objects.exists()
        assert not Movement.objects.exists()

    def test_stored_precision_accepted(self, variant):
        movement = stock.receive_purchase(variant, Decimal('1.125'), Decimal('10.1234'))

        assert movement.new_stock == Decimal('1.125')
        assert movement.batch.unit_cost == Decimal('10.1234')
        assert_chain(variant)


class TestRecordSale:
    """Tests for stock.record_sale()."""

    @pytest.mark.parametrize('method, remaining', [
        (CostingMethod.FIFO, {'A': Decimal('0'), 'B': Decimal('30')}),
        (CostingMethod.LIFO, {'A': Decimal('30'), 'B': Decimal('0')}),
        (CostingMethod.WAC, {'A': Decimal('0'), 'B': Decimal('30')}),
    ])
    def test_drains_in_costing_order(self, product, variant, two_batches, method, remaining):
        product.costing_method = method
        product.save()
        two_batches(variant)

        movement, unconsumed = stock.record_sale(variant, 120, order_ref='SO-1')

        assert unconsumed == Decimal('0')
        assert movement.quantity == Decimal('-120')
        assert movement.new_stock == Decimal('30')
        assert {b.reference: b.quantity for b in variant.batches.all()} == remaining

    @pytest.mark.parametrize('method, value', [
        (CostingMethod.FIFO, Decimal('360')),
        (CostingMethod.LIFO, Decimal('300')),
        (CostingMethod.WAC, Decimal('320')),
    ])
    def test_valuation_after_sale(self, product, variant, two_batches, method, value):
        product.costing_method = method
        product.save()
        two_batches(variant)
        stock.record_sale(variant, 120)

        assert stock.valuate_inventory(variant) == value

    @pytest.mark.parametrize('method, a_day, b_day', [
        (CostingMethod.LIFO, 1, 5),
        # B is backdated before A
        (CostingMethod.FIFO, 5, 1),
    ])
    def test_valuation_with_receipt_after_sale(self, product, variant, method, a_day, b_day):
        product.costing_method = method
        product.save()
        stock.receive_purchase(variant, 100, Decimal('10'), batch_ref='A', received_at=jan(a_day))
        stock.record_sale(variant, 90)
        stock.receive_purchase(variant, 50, Decimal('12'), batch_ref='B', received_at=jan(b_day))

        # 10 left in A, all of B
        assert stock.valuate_inventory(variant) == Decimal('700')

    def test_precision_beyond_storage_refused(self, variant, two_batches):
        two_batches(variant)

        with pytest.raises(StockError) as exc:
            stock.record_sale(variant, Decimal('0.0001'))

        assert exc.value.code == 'INVALID_QUANTITY'
        assert stock.stock_on_hand(variant) == Decimal('150')

    def test_movement_carries_cost_of_goods(self, variant, two_batches):
        two_batches(variant)

        movement, _ = stock.record_sale(variant, 120)

        # (100 * 10 + 20 * 12) / 120
        assert movement.unit_cost == Decimal('10.3333')

    def test_drained_batch_kept_as_tombstone(self, variant, two_batches):
        a, _ = two_batches(variant)
        stock.record_sale(variant, 100)

        a.refresh_from_db()
        assert a.quantity == Decimal('0')
        assert a.quantity_consumed == Decimal('100')
        assert Decimal(a.history[0]['quantity']) == Decimal('100')
        assert variant.batches.count() == 2

    def test_insufficient_without_backorder_rolls_back(self, variant):
        stock.receive_purchase(variant, 10, 5)

        with pytest.raises(StockError) as exc:
            stock.record_sale(variant, 15, order_ref='SO-9')

        assert exc.value.code == 'INSUFFICIENT_QUANTITY'
        assert exc.value.available == Decimal('10')
        assert exc.value.requested == Decimal('15')
        assert stock.stock_on_hand(variant) == Decimal('10')
        assert Movement.objects.count() == 1
        assert not InventoryOrder.objects.filter(reference='SO-9').exists()

    def test_backorder_commits_shortfall(self, backorder_variant):
        stock.receive_purchase(backorder_variant, 10, 5)

        movement, unconsumed = stock.record_sale(backorder_variant, 15)

        backorder_variant.refresh_from_db()
        assert unconsumed == Decimal('5')
        assert movement.quantity == Decimal('-10')
        assert Decimal(movement.metadata['backordered']) == Decimal('5')
        assert backorder_variant.committed == Decimal('5')
        assert stock.available(backorder_variant) == Decimal('-5')

    def test_invalid_quantity(self, variant):
        with pytest.raises(StockError) as exc:
            stock.record_sale(variant, 0)

        assert exc.value.code == 'INVALID_QUANTITY'


class TestAdjustments:
    """Tests for adjustments, damage, expiry and returns."""

    def test_positive_adjustment_creates_batch(self, variant):
        movement = stock.record_adjustment(variant, 5, 'Found in backroom')

        assert movement.kind == 'adjust'
        assert movement.batch.unit_cost == variant.cost
        assert stock.stock_on_hand(variant) == Decimal('5')

    def test_positive_adjustment_with_cost(self, variant):
        movement = stock.record_adjustment(variant, 5, 'Count', unit_cost=Decimal('7.5'))
        assert movement.batch.unit_cost == Decimal('7.5')

    @pytest.mark.parametrize('quantity, cost', [
        (Decimal('0.0004'), None),
        (Decimal('-2.0001'), None),
        (Decimal('5'), Decimal('7.00001')),
    ])
    def test_precision_beyond_storage_refused(self, variant, two_batches, quantity, cost):
        two_batches(variant)

        with pytest.raises(StockError) as exc:
            stock.record_adjustment(variant, quantity, 'Count', unit_cost=cost)

        assert exc.value.code == 'INVALID_QUANTITY'
        assert stock.stock_on_hand(variant) == Decimal('150')

    def test_negative_adjustment_drains(self, variant, two_batches):
        two_batches(variant)

        movement = stock.record_adjustment(variant, -30, 'Shrinkage')

        assert movement.quantity == Decimal('-30')
        assert stock.stock_on_hand(variant) == Decimal('120')

    def test_negative_adjustment_never_backorders(self, backorder_variant):
        stock.receive_purchase(backorder_variant, 3, 1)

        with pytest.raises(StockError) as exc:
            stock.record_adjustment(backorder_variant, -5, 'Count')

        assert exc.value.code == 'INSUFFICIENT_QUANTITY'

    def test_reason_required(self, variant):
        with pytest.raises(StockError) as exc:
            stock.record_adjustment(variant, 5, '')

        assert exc.value.code == 'REASON_REQUIRED'

    def test_zero_rejected(self, variant):
        with pytest.raises(StockError) as exc:
            stock.record_adjustment(variant, 0, 'Nothing')

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_damage_from_specific_batch(self, variant, two_batches):
        a, b = two_batches(variant)

        movement = stock.record_damage(variant, 5, 'Dropped pallet', batch=b)

        a.refresh_from_db()
        b.refresh_from_db()
        assert movement.kind == 'damage'
        assert movement.batch == b
        assert movement.unit_cost == Decimal('12')
        assert a.quantity == Decimal('100')
        assert b.quantity == Decimal('45')

    def test_expired_write_off(self, variant):
        lot = stock.receive_purchase(variant, 10, 2, expiry_date=date.today() - timedelta(days=1)).batch

        movement = stock.record_expired(variant, 10, batch=lot)

        assert movement.kind == 'expired'
        assert stock.stock_on_hand(variant) == Decimal('0')

    def test_return_creates_batch(self, variant):
        movement = stock.record_return(variant, 2, order_ref='RMA-1')

        assert movement.kind == 'return'
        assert movement.quantity == Decimal('2')
        assert movement.batch.unit_cost == variant.cost

    def test_chain_holds_across_operations(self, variant, two_batches, user):
        two_batches(variant)
        stock.record_sale(variant, 40, order_ref='SO-1', user=user)
        stock.record_adjustment(variant, 3, 'Recount')
        stock.record_damage(variant, 2, 'Crushed')
        stock.record_return(variant, 1)
        stock.record_sale(variant, 60)
        stock.cancel_order('SO-1')

        assert_chain(variant)
        assert stock.audit(variant) == []


class TestCancelOrder:
    """Tests for stock.cancel_order()."""

    def test_sale_restores_exact_batches(self, variant, two_batches):
        a, b = two_batches(variant)
        stock.record_sale(variant, 120, order_ref='SO-1')

        compensations = stock.cancel_order('SO-1')

        a.refresh_from_db()
        b.refresh_from_db()
        assert [c.quantity for c in compensations] == [Decimal('120')]
        assert compensations[0].reverses.order.reference == 'SO-1'
        assert (a.quantity, b.quantity) == (Decimal('100'), Decimal('50'))
        assert a.consumed_by('SO-1') == Decimal('0')
        assert InventoryOrder.objects.get(reference='SO-1').status == OrderStatus.CANCELLED

    def test_history_excluding_cancelled(self, variant, two_batches):
        two_batches(variant)
        stock.record_sale(variant, 10, order_ref='SO-1')
        stock.record_sale(variant, 5, order_ref='SO-2')
        stock.cancel_order('SO-1')

        assert stock.history(variant).count() == 5
        kept = stock.history(variant, exclude_cancelled=True)
        assert [m.quantity for m in kept] == [Decimal('100'), Decimal('50'), Decimal('-5')]

    def test_later_sales_not_disturbed(self, variant, two_batches):
        a, b = two_batches(variant)
        stock.record_sale(variant, 90, order_ref='SO-1')
        stock.record_sale(variant, 20, order_ref='SO-2')

        stock.cancel_order('SO-1')

        a.refresh_from_db()
        b.refresh_from_db()
        assert a.consumed_by('SO-2') == Decimal('10')
        assert b.consumed_by('SO-2') == Decimal('10')
        assert stock.stock_on_hand(variant) == Decimal('130')
        assert_chain(variant)

    def test_purchase_drains_its_batch(self, variant):
        stock.receive_purchase(variant, 10, 5, order_ref='PO-1')

        stock.cancel_order('PO-1')

        assert stock.stock_on_hand(variant) == Decimal('0')
        assert variant.batches.count() == 1
        assert_chain(variant)

    def test_consumed_purchase_cannot_cancel(self, variant):
        stock.receive_purchase(variant, 10, 5, order_ref='PO-1')
        stock.record_sale(variant, 3)

        with pytest.raises(StockError) as exc:
            stock.cancel_order('PO-1')

        assert exc.value.code == 'BATCH_CONSUMED'
        assert InventoryOrder.objects.get(reference='PO-1').status != OrderStatus.CANCELLED
        assert stock.stock_on_hand(variant) == Decimal('7')

    def test_backorder_released(self, backorder_variant):
        stock.receive_purchase(backorder_variant, 10, 5)
        stock.record_sale(backorder_variant, 15, order_ref='SO-1')

        stock.cancel_order('SO-1')

        backorder_variant.refresh_from_db()
        assert backorder_variant.committed == Decimal('0')
        assert stock.stock_on_hand(backorder_variant) == Decimal('10')

    def test_no_events_on_cancelled_order(self, variant):
        stock.receive_purchase(variant, 10, 5)
        stock.record_sale(variant, 1, order_ref='SO-1')
        stock.cancel_order('SO-1')

        with pytest.raises(StockError) as exc:
            stock.record_sale(variant, 1, order_ref='SO-1')
        assert exc.value.code == 'ORDER_CANCELLED'

        with pytest.raises(StockError) as exc:
            stock.cancel_order('SO-1')
        assert exc.value.code == 'ORDER_CANCELLED'

    def test_unknown_order(self):
        with pytest.raises(StockError) as exc:
            stock.cancel_order('NOPE')

        assert exc.value.code == 'ORDER_NOT_FOUND'


class TestLedgerIntegrity:
    """Tests for the chain check and immutability."""

    def test_drift_raises_ledger_mismatch(self, variant):
        lot = stock.receive_purchase(variant, 10, 5).batch
        Batch.objects.filter(pk=lot.pk).update(quantity=Decimal('8'))

        with pytest.raises(StockError) as exc:
            stock.record_sale(variant, 1)

        assert exc.value.code == 'LEDGER_MISMATCH'
        assert Movement.objects.count() == 1

    def test_movement_immutable(self, variant):
        movement = stock.receive_purchase(variant, 10, 5)

        with pytest.raises(ValueError):
            movement.save()
        with pytest.raises(ValueError):
            movement.delete()

    def test_batch_never_deleted(self, variant):
        lot = stock.receive_purchase(variant, 10, 5).batch

        with pytest.raises(ValueError):
            lot.delete()

    def test_latest_movement(self, variant):
        assert stock.latest_movement(variant) is None

        stock.receive_purchase(variant, 10, 5)
        last = stock.record_adjustment(variant, -1, 'Count')

        assert stock.latest_movement(variant) == last


class TestCostingMethodChange:
    """Tests for stock.change_costing_method()."""

    def test_allowed_before_consumption(self, product, variant):
        stock.receive_purchase(variant, 10, 5)

        stock.change_costing_method(product, CostingMethod.LIFO)

        product.refresh_from_db()
        assert product.costing_method == 'LIFO'

    def test_locked_after_consumption(self, product, variant):
        stock.receive_purchase(variant, 10, 5)
        stock.record_sale(variant, 1)

        with pytest.raises(StockError) as exc:
            stock.change_costing_method(product, CostingMethod.WAC)

        assert exc.value.code == 'COSTING_METHOD_LOCKED'
        product.refresh_from_db()
        assert product.costing_method == 'FIFO'

    def test_cancelled_purchase_does_not_lock(self, product, variant):
        stock.receive_purchase(variant, 10, 5, order_ref='PO-1')
        stock.cancel_order('PO-1')

        stock.change_costing_method(product, CostingMethod.LIFO)

        product.refresh_from_db()
        assert product.costing_method == 'LIFO'

    def test_cancelled_sale_does_not_lock(self, product, variant):
        stock.receive_purchase(variant, 10, 5)
        stock.record_sale(variant, 4, order_ref='SO-1')
        stock.cancel_order('SO-1')

        stock.change_costing_method(product, CostingMethod.WAC)

        product.refresh_from_db()
        assert product.costing_method == 'WAC'

    def test_unknown_method(self, product):
        with pytest.raises(StockError) as exc:
            stock.change_costing_method(product, 'HIFO')

        assert exc.value.code == 'INVALID_COSTING_METHOD'


class TestQueries:
    """Tests for read-only queries."""

    def test_batches_skip_tombstones(self, variant, two_batches):
        two_batches(variant)
        stock.record_sale(variant, 100)

        assert [b.reference for b in stock.batches(variant)] == ['B']
        assert [b.reference for b in stock.batches(variant, include_empty=True)] == ['A', 'B']

    def test_expiring_batches(self, variant):
        soon = stock.receive_purchase(variant, 5, 1, batch_ref='SOON',
                                      expiry_date=date.today() + timedelta(days=3)).batch
        stock.receive_purchase(variant, 5, 1, batch_ref='LATER',
                               expiry_date=date.today() + timedelta(days=90))
        stock.receive_purchase(variant, 5, 1, batch_ref='NEVER')

        assert list(stock.expiring_batches(within_days=30)) == [soon]

    def test_valuation_empty_is_zero(self, variant):
        assert stock.valuate_inventory(variant) == Decimal('0')

    def test_valuate_product(self, product, variant, backorder_variant):
        stock.receive_purchase(variant, 10, 2)
        stock.receive_purchase(backorder_variant, 5, 3)

        assert stock.valuate_product(product) == Decimal('35')
