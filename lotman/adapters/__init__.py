"""
Lotman Adapters.

Implementations of protocols for external systems.
"""

from lotman.adapters.loading import (
    get_alert_notifier,
    get_demand_source,
    reset_adapters,
)

__all__ = [
    "get_alert_notifier",
    "get_demand_source",
    "reset_adapters",
]
