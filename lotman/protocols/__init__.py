"""
Lotman Protocols.

Defines interfaces for external system integration.
"""

from lotman.protocols.demand import DemandRecord, DemandSource
from lotman.protocols.notification import AlertNotifier

__all__ = [
    "AlertNotifier",
    "DemandRecord",
    "DemandSource",
]
