"""Recompute pipeline and the store-facing inventory service."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from .clock import Clock, SystemClock
from .disposal import DisposalError, dispose
from .expiry import DEFAULT_THRESHOLDS, ExpiryThresholds
from .filters import InventoryFilter
from .ledger import Ledger, fold_batch, reconstruct
from .models import BatchKey, CatalogEntry, PromotionInfo, TransactionRecord, WriteOff
from .ports import EventStore, ProductCatalog, SourceUnavailableError
from .views import AggregateProduct, CurrentRow, TotalSource, all_view, current_view

if TYPE_CHECKING:
    from .config import LedgerConfig

logger = logging.getLogger(__name__)


class RecomputeError(RuntimeError):
    """A refresh failed; the previous projection is still in place."""


@dataclass(frozen=True)
class Snapshot:
    """Everything one recompute reads, pulled from the collaborators at once."""

    store_id: str
    records: tuple[TransactionRecord, ...]
    catalog: dict[str, CatalogEntry]
    promotions: dict[str, PromotionInfo] = field(default_factory=dict)


@dataclass(frozen=True)
class Projection:
    store_id: str
    computed_at: datetime
    ledger: Ledger
    current: list[CurrentRow]
    all_products: list[AggregateProduct]

    @property
    def warnings(self) -> tuple[str, ...]:
        return self.ledger.warnings

    def filter_current(self, criteria: InventoryFilter) -> list[CurrentRow]:
        return criteria.apply(self.current)

    def filter_all(self, criteria: InventoryFilter) -> list[AggregateProduct]:
        return criteria.apply(self.all_products)


def recompute(
    snapshot: Snapshot,
    now: datetime,
    *,
    thresholds: ExpiryThresholds = DEFAULT_THRESHOLDS,
    total_source: TotalSource = TotalSource.LEDGER,
) -> Projection:
    """Build both views from a snapshot. Deterministic for a given (snapshot, now)."""
    ledger = reconstruct(snapshot.records, snapshot.catalog)
    return Projection(
        store_id=snapshot.store_id,
        computed_at=now,
        ledger=ledger,
        current=current_view(ledger, now, snapshot.promotions, thresholds),
        all_products=all_view(
            ledger,
            snapshot.catalog,
            now,
            snapshot.promotions,
            total_source=total_source,
            thresholds=thresholds,
        ),
    )


class InventoryService:
    """Pulls snapshots for one store, keeps the last good projection, and
    accepts write-off commands.

    Refreshes only happen on request (``refresh``/``notify``); appending a
    write-off never updates the projection by itself.
    """

    def __init__(
        self,
        store_id: str,
        events: EventStore,
        catalog: ProductCatalog,
        clock: Clock | None = None,
        *,
        thresholds: ExpiryThresholds = DEFAULT_THRESHOLDS,
        total_source: TotalSource = TotalSource.LEDGER,
    ) -> None:
        self.store_id = store_id
        self._events = events
        self._catalog = catalog
        self._clock = clock or SystemClock()
        self._thresholds = thresholds
        self._total_source = total_source
        self._projection: Projection | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: LedgerConfig,
        events: EventStore,
        catalog: ProductCatalog,
        clock: Clock | None = None,
    ) -> InventoryService:
        return cls(
            config.store.id,
            events,
            catalog,
            clock,
            thresholds=config.expiry.thresholds,
            total_source=TotalSource(config.views.total_source),
        )

    @property
    def projection(self) -> Projection | None:
        """The last successfully computed projection (a snapshot, not live)."""
        with self._lock:
            return self._projection

    def snapshot(self) -> Snapshot:
        records = self._events.read_all(self.store_id)
        catalog = self._catalog.entries(self.store_id)
        promotions = self._catalog.promotions(self.store_id)
        return Snapshot(self.store_id, tuple(records), catalog, promotions)

    def refresh(self) -> Projection:
        """Re-pull everything and recompute.

        Raises:
            RecomputeError: If the event store or catalog is unreachable, or the
                records cannot be folded into a projection. The previously
                published projection is kept.
        """
        try:
            snapshot = self.snapshot()
        except SourceUnavailableError as e:
            logger.error("재고 재계산 실패 (이전 결과 유지): %s", e)
            raise RecomputeError(str(e)) from e

        try:
            projection = recompute(
                snapshot,
                self._clock.now(),
                thresholds=self._thresholds,
                total_source=self._total_source,
            )
        except Exception as e:
            logger.exception("재고 재계산 중 오류 (이전 결과 유지)")
            raise RecomputeError(f"재계산 실패: {e}") from e
        with self._lock:
            self._projection = projection
        logger.info(
            "재고 재계산 완료: 매장 %s, 배치 %d건, 현재 재고 %d건, 상품 %d건",
            self.store_id,
            len(projection.ledger),
            len(projection.current),
            len(projection.all_products),
        )
        return projection

    def notify(self) -> Projection:
        """Change-notifier entry point: something changed, recompute everything."""
        return self.refresh()

    def dispose(
        self,
        batch_key: BatchKey | str,
        quantity: int,
        reason: str,
        created_by: str | None = None,
    ) -> WriteOff:
        """Write off stock from a batch, checked against the store's records now.

        The batch is re-folded from a fresh read of the event store so that
        sales appended by other sessions since the last refresh count against
        the limit. The published projection is left untouched.

        Raises:
            DisposalError: If the batch is unknown or the write-off fails
                validation.
            SourceUnavailableError: If the event store or catalog is
                unreachable. Nothing is appended.
        """
        if isinstance(batch_key, str):
            batch_key = BatchKey.parse(batch_key)
        records = [
            r for r in self._events.read_all(self.store_id) if r.batch_key == batch_key
        ]
        entry = self._catalog.entries(self.store_id).get(batch_key.product_id)
        if not records or entry is None:
            raise DisposalError(f"배치를 찾을 수 없습니다: {batch_key}")
        return dispose(
            fold_batch(batch_key, records, entry),
            quantity,
            reason,
            store=self._events,
            store_id=self.store_id,
            clock=self._clock,
            created_by=created_by,
        )
