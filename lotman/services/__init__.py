"""
Stock services: modular organization of stock operations.

    from lotman.services import StockQueries, StockMovements, StockPlanning
"""

from lotman.services.alerts import StockAlerts
from lotman.services.audit import LedgerIssue, StockAudit
from lotman.services.demand import StockDemand
from lotman.services.movements import StockMovements
from lotman.services.planning import StockPlanning
from lotman.services.queries import StockQueries

__all__ = [
    'LedgerIssue',
    'StockAlerts',
    'StockAudit',
    'StockDemand',
    'StockMovements',
    'StockPlanning',
    'StockQueries',
]
