from .inventory import Product, margin_pct, DEFAULT_CATEGORY, CRITICAL_STOCK_LEVEL
from .sales import Sale
from .history import (
    PriceChange,
    PriceChangeReason,
    PriceHistoryEntry,
    RestockHistoryEntry,
    RestockReason,
)
from .settings import Settings
from .state import StoreState, COLLECTION_KEYS
from .storage import StorageEntry

__all__ = [
    'Product', 'margin_pct', 'DEFAULT_CATEGORY', 'CRITICAL_STOCK_LEVEL',
    'Sale',
    'PriceChange', 'PriceChangeReason', 'PriceHistoryEntry',
    'RestockHistoryEntry', 'RestockReason',
    'Settings',
    'StoreState', 'COLLECTION_KEYS',
    'StorageEntry',
]
