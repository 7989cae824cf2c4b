"""
Alert Notifier Protocol: Interface for delivering stock risk alerts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from lotman.reorder import Alert


@runtime_checkable
class AlertNotifier(Protocol):
    """
    Protocol for alert delivery (email, chat, ticketing...).

    Called once per sweep with every alert, most urgent first.
    """

    def notify(self, alerts: list[Alert]) -> None:
        ...
