"""Event store and product catalog interfaces, with in-memory implementations."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import defaultdict

from .models import CatalogEntry, PromotionInfo, TransactionRecord


class SourceUnavailableError(RuntimeError):
    """The event store or catalog could not be read."""


class EventStore(ABC):
    """Append-only log of transaction records, partitioned by store."""

    @abstractmethod
    def read_all(self, store_id: str) -> list[TransactionRecord]:
        """Return a consistent snapshot of every record for a store."""
        ...

    @abstractmethod
    def append(self, store_id: str, record: TransactionRecord) -> None:
        ...


class ProductCatalog(ABC):
    """Read-only product lookup for a store."""

    @abstractmethod
    def entries(self, store_id: str) -> dict[str, CatalogEntry]:
        """Return the store's products keyed by product id."""
        ...

    def promotions(self, store_id: str) -> dict[str, PromotionInfo]:
        """Return running promotions keyed by product id."""
        return {}


class InMemoryEventStore(EventStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, list[TransactionRecord]] = defaultdict(list)

    def read_all(self, store_id: str) -> list[TransactionRecord]:
        with self._lock:
            return list(self._records.get(store_id, ()))

    def append(self, store_id: str, record: TransactionRecord) -> None:
        with self._lock:
            if any(r.id == record.id for r in self._records[store_id]):
                raise ValueError(f"이미 존재하는 트랜잭션 ID: {record.id}")
            self._records[store_id].append(record)

    def extend(self, store_id: str, records: list[TransactionRecord]) -> None:
        for record in records:
            self.append(store_id, record)


class InMemoryCatalog(ProductCatalog):
    def __init__(
        self,
        entries: dict[str, dict[str, CatalogEntry]] | None = None,
        promotions: dict[str, dict[str, PromotionInfo]] | None = None,
    ) -> None:
        self._entries = entries or {}
        self._promotions = promotions or {}

    def entries(self, store_id: str) -> dict[str, CatalogEntry]:
        return dict(self._entries.get(store_id, {}))

    def promotions(self, store_id: str) -> dict[str, PromotionInfo]:
        return dict(self._promotions.get(store_id, {}))

    def add(self, store_id: str, entry: CatalogEntry) -> None:
        self._entries.setdefault(store_id, {})[entry.product_id] = entry

    def set_promotion(self, store_id: str, product_id: str, promotion: PromotionInfo) -> None:
        self._promotions.setdefault(store_id, {})[product_id] = promotion
