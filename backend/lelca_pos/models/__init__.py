from .inventory import InventoryItem
from .sales import Transaction, TransactionLine, RefundRecord, RefundLine
from .documents import DocumentSequence
from .settings import StoreSettings
from .session import SessionToken

__all__ = [
    'InventoryItem',
    'Transaction', 'TransactionLine', 'RefundRecord', 'RefundLine',
    'DocumentSequence',
    'StoreSettings',
    'SessionToken',
]
