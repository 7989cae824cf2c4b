"""
Pytest fixtures for Lotman tests.
"""

from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from lotman.adapters import reset_adapters
from lotman.models import CostingMethod, Product, Variant


User = get_user_model()


@pytest.fixture(autouse=True)
def _fresh_adapters():
    """Adapters are cached per process; settings overrides need a reload."""
    reset_adapters()
    yield
    reset_adapters()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='testuser',
        password='testpass123'
    )


@pytest.fixture
def product(db):
    """FIFO product with default lead time and buffer."""
    return Product.objects.create(
        name='Espresso Beans',
        sku='ESP',
        costing_method=CostingMethod.FIFO,
        lead_time_days=7,
        reorder_buffer_days=7,
    )


@pytest.fixture
def variant(product):
    """Sellable variant, no backorder."""
    return Variant.objects.create(
        product=product,
        sku='ESP-250',
        name='250 g',
        price=Decimal('12.00'),
        cost=Decimal('9.00'),
    )


@pytest.fixture
def backorder_variant(product):
    """Variant that accepts sales beyond stock."""
    return Variant.objects.create(
        product=product,
        sku='ESP-1K',
        name='1 kg',
        allow_backorder=True,
    )


def jan(day: int) -> datetime:
    return datetime(2024, 1, day, tzinfo=dt_timezone.utc)


@pytest.fixture
def two_batches():
    """
    Receive the reference layers into a variant:
    A = 100 @ 10 on Jan 1, B = 50 @ 12 on Jan 5.
    """
    from lotman import stock

    def _receive(variant):
        a = stock.receive_purchase(variant, 100, Decimal('10'), batch_ref='A', received_at=jan(1))
        b = stock.receive_purchase(variant, 50, Decimal('12'), batch_ref='B', received_at=jan(5))
        return a.batch, b.batch

    return _receive
