"""Inventory ledger reconstruction and expiry-batch classification."""

from .clock import Clock, FixedClock, SystemClock
from .config import LedgerConfig, load_config
from .disposal import DisposalError, dispose
from .expiry import ExpiryInfo, ExpiryStatus, ExpiryThresholds, classify
from .filters import InventoryFilter, apply_filters
from .ledger import Ledger, reconstruct
from .models import (
    Adjustment,
    Batch,
    BatchKey,
    CatalogEntry,
    LedgerEntry,
    PromotionInfo,
    Receipt,
    Return,
    Sale,
    StockLevel,
    TransactionRecord,
    WriteOff,
)
from .ports import (
    EventStore,
    InMemoryCatalog,
    InMemoryEventStore,
    ProductCatalog,
    SourceUnavailableError,
)
from .service import InventoryService, Projection, RecomputeError, Snapshot, recompute
from .views import (
    AggregateProduct,
    CurrentRow,
    InventorySummary,
    TotalSource,
    all_view,
    current_view,
    summarize,
)

__all__ = [
    "Clock",
    "SystemClock",
    "FixedClock",
    "LedgerConfig",
    "load_config",
    "BatchKey",
    "Receipt",
    "Sale",
    "Return",
    "Adjustment",
    "WriteOff",
    "TransactionRecord",
    "CatalogEntry",
    "PromotionInfo",
    "Batch",
    "LedgerEntry",
    "StockLevel",
    "Ledger",
    "reconstruct",
    "ExpiryStatus",
    "ExpiryInfo",
    "ExpiryThresholds",
    "classify",
    "CurrentRow",
    "AggregateProduct",
    "InventorySummary",
    "TotalSource",
    "current_view",
    "all_view",
    "summarize",
    "InventoryFilter",
    "apply_filters",
    "DisposalError",
    "dispose",
    "EventStore",
    "ProductCatalog",
    "InMemoryEventStore",
    "InMemoryCatalog",
    "SourceUnavailableError",
    "InventoryService",
    "Projection",
    "Snapshot",
    "RecomputeError",
    "recompute",
]
