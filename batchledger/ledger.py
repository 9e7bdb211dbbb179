"""Batch ledger reconstruction: fold transaction records into batch quantities."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .models import Batch, BatchKey, CatalogEntry, LedgerEntry, TransactionRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ledger:
    """Result of one reconstruction pass over a store's records."""

    batches: dict[BatchKey, Batch] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.batches)

    def __contains__(self, key: object) -> bool:
        return key in self.batches

    def get(self, key: BatchKey) -> Batch | None:
        return self.batches.get(key)

    def batches_for(self, product_id: str) -> list[Batch]:
        return [b for b in self.batches.values() if b.product_id == product_id]

    def quantity_of(self, product_id: str) -> int:
        """Sum of current quantities over every batch of a product."""
        return sum(b.current_quantity for b in self.batches_for(product_id))


def fold_batch(
    key: BatchKey, records: Iterable[TransactionRecord], entry: CatalogEntry
) -> Batch:
    """Replay one batch's records in (timestamp, id) order.

    Receipts and returns add, sales and write-offs subtract, adjustments set the
    absolute quantity. The result is not clamped: a negative quantity means the
    log itself is inconsistent and is left visible.
    """
    running = 0
    history: list[LedgerEntry] = []
    for record in sorted(records, key=lambda r: r.sort_key):
        after = record.apply(running)
        history.append(LedgerEntry(record, running, after))
        running = after

    return Batch(
        key=key,
        product_name=entry.name,
        unit=entry.unit,
        current_quantity=running,
        safety_stock=entry.safety_stock,
        max_stock=entry.max_stock,
        price=entry.price,
        is_available=entry.is_available,
        history=tuple(history),
    )


def reconstruct(
    records: Iterable[TransactionRecord], catalog: Mapping[str, CatalogEntry]
) -> Ledger:
    """Rebuild every batch of a store from its full, unordered record list.

    Records whose product is missing from *catalog* are dropped with a warning.
    """
    groups: dict[BatchKey, list[TransactionRecord]] = defaultdict(list)
    for record in records:
        groups[record.batch_key].append(record)

    batches: dict[BatchKey, Batch] = {}
    warnings: list[str] = []
    for key, group in groups.items():
        entry = catalog.get(key.product_id)
        if entry is None:
            message = (
                f"상품 정보가 없는 배치를 건너뜁니다: {key} (트랜잭션 {len(group)}건)"
            )
            logger.warning(message)
            warnings.append(message)
            continue
        batches[key] = fold_batch(key, group, entry)

    negative = sum(1 for b in batches.values() if b.current_quantity < 0)
    if negative:
        logger.warning("재고가 음수인 배치 %d건 (트랜잭션 불일치)", negative)

    logger.debug("배치 %d건 재구성 완료", len(batches))
    return Ledger(batches=batches, warnings=tuple(warnings))
