"""
Exceptions for Lotman.

All errors are StockError with a structured code for programmatic handling.
"""

from decimal import Decimal
from typing import Any


class BaseError(Exception):
    """
    Error with a machine-readable code, a message and context data.

    Subclasses provide ``_default_messages`` so callers only pass the code.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class StockError(BaseError):
    """
    Structured exception for stock operations.

    Usage:
        try:
            stock.record_sale(variant, 10, order_ref='SO-1')
        except StockError as e:
            if e.code == 'INSUFFICIENT_QUANTITY':
                print(f"Only {e.available} in stock")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'INVALID_QUANTITY': 'Quantity must be positive',
        'INSUFFICIENT_QUANTITY': 'Not enough stock in batches',
        'REASON_REQUIRED': 'A reason is required',
        'LEDGER_MISMATCH': 'Movement chain does not match batch state',
        'ORDER_CANCELLED': 'Order is cancelled',
        'ORDER_NOT_FOUND': 'Order not found',
        'BATCH_CONSUMED': 'Batch was already consumed by other orders',
        'COSTING_METHOD_LOCKED': 'Costing method cannot change after batches were consumed',
        'INVALID_COSTING_METHOD': 'Unknown costing method',
    }

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def requested(self) -> Decimal:
        """Shortcut for data['requested']."""
        return self.data.get('requested', Decimal('0'))

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }
