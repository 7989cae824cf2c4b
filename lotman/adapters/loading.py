"""
Adapter loading: resolve the configured collaborators from dotted paths.

Usage:
    from lotman.adapters import get_demand_source, get_alert_notifier

    source = get_demand_source()
    records = source.demand_for(variant, since)

Settings:
    LOTMAN = {
        "DEMAND_SOURCE": "lotman.adapters.ledger.LedgerDemandSource",
        "ALERT_NOTIFIER": "lotman.adapters.noop.LogAlertNotifier",
    }

Instances are cached; call reset_adapters() after changing settings
(tests do this through an autouse fixture).
"""

from __future__ import annotations

import logging
import threading

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from lotman.conf import lotman_settings
from lotman.protocols.demand import DemandSource
from lotman.protocols.notification import AlertNotifier

logger = logging.getLogger(__name__)


_lock = threading.Lock()
_instances: dict[str, object] = {}


def _load(setting: str, protocol):
    instance = _instances.get(setting)
    if instance is None:
        with _lock:
            instance = _instances.get(setting)
            if instance is None:  # double-checked
                path = getattr(lotman_settings, setting)
                if not path:
                    raise ImproperlyConfigured(f"LOTMAN['{setting}'] must be configured.")

                try:
                    instance = import_string(path)()
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import LOTMAN['{setting}'] '{path}': {e}"
                    ) from e

                if not isinstance(instance, protocol):
                    raise ImproperlyConfigured(
                        f"LOTMAN['{setting}'] '{path}' does not implement {protocol.__name__}"
                    )

                _instances[setting] = instance
                logger.debug("Loaded %s: %s", setting, path)

    return instance


def get_demand_source() -> DemandSource:
    """
    Return the configured demand source.

    Raises:
        ImproperlyConfigured: If the path is empty, fails to import, or
            doesn't implement DemandSource
    """
    return _load("DEMAND_SOURCE", DemandSource)


def get_alert_notifier() -> AlertNotifier:
    """Return the configured alert notifier."""
    return _load("ALERT_NOTIFIER", AlertNotifier)


def reset_adapters() -> None:
    """Reset cached adapters. Useful for testing."""
    with _lock:
        _instances.clear()
