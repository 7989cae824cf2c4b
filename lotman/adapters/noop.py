"""
Alert notifiers for development and simple deployments.

Usage in settings.py:
    LOTMAN = {
        "ALERT_NOTIFIER": "lotman.adapters.noop.LogAlertNotifier",
    }

LogAlertNotifier is the default: alerts end up in the "lotman" logger,
where any handler (mail_admins, Sentry...) can pick them up.
"""

from __future__ import annotations

import logging

logger = logging.getLogger('lotman')


class NoopAlertNotifier:
    """Drops every alert. Useful in tests."""

    def notify(self, alerts) -> None:
        return None


class LogAlertNotifier:
    """Logs a one-line summary per sweep; details stay in the alert records."""

    def notify(self, alerts) -> None:
        if not alerts:
            return
        logger.warning(
            "stock.alert.summary",
            extra={
                "count": len(alerts),
                "skus": [a.sku for a in alerts],
                "out_of_stock": sum(1 for a in alerts if a.severity == 'out-of-stock'),
            },
        )
