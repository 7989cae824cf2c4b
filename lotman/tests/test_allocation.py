"""
Tests for MOQ allocation (no database).
"""

from decimal import Decimal

import pytest

from lotman.allocation import Line, allocate_with_moq, largest_remainder
from lotman.exceptions import StockError


class TestLargestRemainder:
    """Tests for largest_remainder()."""

    def test_exact_shares(self):
        assert largest_remainder(100, [42, 21, 7]) == [60, 30, 10]

    def test_leftover_to_largest_remainders(self):
        # Quotas 3.33 / 3.33 / 3.33: one unit left, goes to the first
        assert largest_remainder(10, [1, 1, 1]) == [4, 3, 3]

    def test_all_zero_weights_split_equally(self):
        assert largest_remainder(7, [0, 0]) == [4, 3]

    def test_decimal_weights(self):
        parts = largest_remainder(9, [Decimal('0.5'), Decimal('1.0'), Decimal('1.5')])
        # Quotas 1.5 / 3 / 4.5: the tie on .5 goes to the earlier part
        assert parts == [2, 3, 4]

    @pytest.mark.parametrize('target, weights', [
        (17, [5, 3, 1]),
        (1, [1, 1, 1, 1]),
        (250, [Decimal('0.1'), Decimal('3'), Decimal('7.7')]),
    ])
    def test_always_reconciles(self, target, weights):
        assert sum(largest_remainder(target, weights)) == target

    def test_negative_weight_rejected(self):
        with pytest.raises(StockError):
            largest_remainder(10, [1, -1])


class TestAllocateWithMoq:
    """Tests for allocate_with_moq()."""

    def test_reference_example(self):
        flagged = [Line('A', 42), Line('B', 21), Line('C', 7)]

        result = allocate_with_moq(flagged, min_order_qty=100)

        assert [a.allocated for a in result] == [60, 30, 10]
        assert [a.moq_adjustment for a in result] == [18, 9, 3]

    def test_moq_below_recommendation_keeps_recommendation(self):
        flagged = [Line('A', 42), Line('B', 21)]

        result = allocate_with_moq(flagged, min_order_qty=10)

        assert [a.allocated for a in result] == [42, 21]

    def test_nothing_flagged_orders_nothing(self):
        assert allocate_with_moq([], [Line('A', 0, Decimal('3'))], min_order_qty=50) == []

    def test_backfill_by_demand_rate(self):
        flagged = [Line('A', 0, Decimal('1'))]
        candidates = [Line('C', 0, Decimal('1')), Line('B', 0, Decimal('3'))]

        result = allocate_with_moq(flagged, candidates, min_order_qty=40)

        # Fastest mover first, flagged variant keeps its zero order
        assert [(a.key, a.allocated) for a in result] == [('A', 0), ('B', 30), ('C', 10)]
        assert [a.key for a in result if a.backfilled] == ['B', 'C']

    def test_backfill_skips_variants_without_share(self):
        flagged = [Line('A', 0)]
        candidates = [Line('B', 0, Decimal('2')), Line('C', 0, Decimal('0'))]

        result = allocate_with_moq(flagged, candidates, min_order_qty=10)

        assert {a.key: a.allocated for a in result} == {'A': 0, 'B': 10}

    def test_backfill_without_demand_splits_equally(self):
        flagged = [Line('A', 0)]
        candidates = [Line('B', 0), Line('C', 0)]

        result = allocate_with_moq(flagged, candidates, min_order_qty=5)

        assert {a.key: a.allocated for a in result} == {'A': 0, 'B': 3, 'C': 2}

    def test_flagged_share_moq_without_other_variants(self):
        flagged = [Line('A', 0, Decimal('1')), Line('B', 0, Decimal('3'))]

        result = allocate_with_moq(flagged, min_order_qty=40)

        assert [a.allocated for a in result] == [10, 30]
        assert all(a.backfilled for a in result)

    def test_negative_moq_rejected(self):
        with pytest.raises(StockError):
            allocate_with_moq([Line('A', 1)], min_order_qty=-1)
