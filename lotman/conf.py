"""
Lotman configuration.

Usage in settings.py:
    LOTMAN = {
        "DEFAULT_LEAD_TIME_DAYS": 7,
        "DEFAULT_BUFFER_DAYS": 7,
        "MIN_DAILY_RATE": "0.1",
        "DEMAND_SOURCE": "lotman.adapters.ledger.LedgerDemandSource",
        "ALERT_NOTIFIER": "lotman.adapters.noop.LogAlertNotifier",
    }
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings


@dataclass
class LotmanSettings:
    """Lotman configuration settings."""

    # Lead time used when neither variant nor product defines one
    DEFAULT_LEAD_TIME_DAYS: int = 7

    # Safety buffer used when the product doesn't define one
    DEFAULT_BUFFER_DAYS: int = 7

    # Trailing demand window in days (0 = lead time + buffer)
    DEMAND_WINDOW_DAYS: int = 0

    # Floor for the daily demand rate so division never hits zero
    MIN_DAILY_RATE: Decimal = Decimal('0.1')

    # Days of stock at or below which an alert is critical
    CRITICAL_DAYS: int = 3

    # Horizon for expiring_batches()
    EXPIRY_WARNING_DAYS: int = 30

    # Demand history backend (dotted path)
    DEMAND_SOURCE: str = "lotman.adapters.ledger.LedgerDemandSource"

    # Alert delivery backend (dotted path)
    ALERT_NOTIFIER: str = "lotman.adapters.noop.LogAlertNotifier"

    def __post_init__(self):
        self.MIN_DAILY_RATE = Decimal(str(self.MIN_DAILY_RATE))


def get_lotman_settings() -> LotmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "LOTMAN", {})
    return LotmanSettings(**{
        k: v for k, v in user_settings.items()
        if k in LotmanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_lotman_settings(), name)


lotman_settings = _LazySettings()
