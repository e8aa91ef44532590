from .parties import Party
from .inventory import Item
from .transactions import Purchase, PurchaseLine, Sale, SaleLine, Payment
from .documents import DocumentSequence, ReconciliationEvent

__all__ = [
    'Party',
    'Item',
    'Purchase', 'PurchaseLine', 'Sale', 'SaleLine', 'Payment',
    'DocumentSequence', 'ReconciliationEvent',
]
