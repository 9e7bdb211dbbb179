"""Current-stock and all-products projections over a reconstructed ledger."""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .clock import as_aware
from .expiry import DEFAULT_THRESHOLDS, ExpiryInfo, ExpiryStatus, ExpiryThresholds, classify
from .ledger import Ledger
from .models import Batch, CatalogEntry, PromotionInfo, StockLevel, stock_level


class TotalSource(Enum):
    """Where the all-products view takes a product's total from."""

    LEDGER = "ledger"  # always the sum of the product's batches
    RECORDED = "recorded"  # stored total when present, ledger sum otherwise


@dataclass(frozen=True)
class CurrentRow:
    """A batch holding stock, with its expiry classification at recompute time."""

    batch: Batch
    expiry: ExpiryInfo
    promotion: PromotionInfo | None = None

    @property
    def product_id(self) -> str:
        return self.batch.product_id

    @property
    def product_name(self) -> str:
        return self.batch.product_name

    @property
    def unit(self) -> str:
        return self.batch.unit

    @property
    def quantity(self) -> int:
        return self.batch.current_quantity

    @property
    def safety_stock(self) -> int:
        return self.batch.safety_stock

    @property
    def expires_at(self) -> datetime | None:
        return self.batch.expires_at

    @property
    def stock_level(self) -> StockLevel:
        return self.batch.stock_level


@dataclass(frozen=True)
class BatchDetail:
    expires_at: datetime | None
    quantity: int
    expiry: ExpiryInfo


@dataclass(frozen=True)
class AggregateProduct:
    """One row of the all-products view."""

    product_id: str
    product_name: str
    unit: str
    total_quantity: int
    safety_stock: int = 0
    max_stock: int = 0
    shelf_life_days: int | None = None
    ledger_quantity: int = 0
    recorded_quantity: int | None = None
    promotion: PromotionInfo | None = None
    batches: tuple[BatchDetail, ...] = field(default=(), repr=False)

    # Aggregates carry no single expiry; expiry filters pass them through.
    expiry = None

    @property
    def quantity(self) -> int:
        return self.total_quantity

    @property
    def is_reconciled(self) -> bool:
        """True when the stored total (if any) agrees with the ledger."""
        return self.recorded_quantity is None or self.recorded_quantity == self.ledger_quantity

    @property
    def stock_level(self) -> StockLevel:
        return stock_level(self.total_quantity, self.safety_stock)


def _expiry_order(expires_at: datetime | None) -> tuple:
    # Batches with an expiry come first, soonest first
    return (0, as_aware(expires_at)) if expires_at is not None else (1,)


def _current_sort_key(row: CurrentRow) -> tuple:
    return (_expiry_order(row.expires_at), row.product_name.casefold(), row.product_id)


def current_view(
    ledger: Ledger,
    now: datetime,
    promotions: Mapping[str, PromotionInfo] | None = None,
    thresholds: ExpiryThresholds = DEFAULT_THRESHOLDS,
) -> list[CurrentRow]:
    """Batches with positive stock, soonest expiry first."""
    promotions = promotions or {}
    rows = [
        CurrentRow(
            batch=batch,
            expiry=classify(batch.expires_at, now, thresholds),
            promotion=promotions.get(batch.product_id),
        )
        for batch in ledger.batches.values()
        if batch.current_quantity > 0
    ]
    rows.sort(key=_current_sort_key)
    return rows


def all_view(
    ledger: Ledger,
    catalog: Mapping[str, CatalogEntry],
    now: datetime,
    promotions: Mapping[str, PromotionInfo] | None = None,
    total_source: TotalSource = TotalSource.LEDGER,
    thresholds: ExpiryThresholds = DEFAULT_THRESHOLDS,
) -> list[AggregateProduct]:
    """One row per catalog product, in or out of stock, ordered by name."""
    promotions = promotions or {}
    by_product: dict[str, list[Batch]] = defaultdict(list)
    for batch in ledger.batches.values():
        by_product[batch.product_id].append(batch)

    rows: list[AggregateProduct] = []
    for product_id, entry in catalog.items():
        batches = sorted(by_product[product_id], key=lambda b: _expiry_order(b.expires_at))
        ledger_quantity = sum(b.current_quantity for b in batches)
        if total_source is TotalSource.RECORDED and entry.stock_quantity is not None:
            total = entry.stock_quantity
        else:
            total = ledger_quantity

        rows.append(
            AggregateProduct(
                product_id=product_id,
                product_name=entry.name,
                unit=entry.unit,
                total_quantity=total,
                safety_stock=entry.safety_stock,
                max_stock=entry.max_stock,
                shelf_life_days=entry.shelf_life_days,
                ledger_quantity=ledger_quantity,
                recorded_quantity=entry.stock_quantity,
                promotion=promotions.get(product_id),
                batches=tuple(
                    BatchDetail(
                        b.expires_at,
                        b.current_quantity,
                        classify(b.expires_at, now, thresholds),
                    )
                    for b in batches
                ),
            )
        )

    rows.sort(key=lambda r: (r.product_name.casefold(), r.product_id))
    return rows


@dataclass(frozen=True)
class InventorySummary:
    row_count: int
    total_quantity: int
    low_count: int
    out_count: int
    expiry_counts: dict[ExpiryStatus, int] = field(default_factory=dict)


def summarize(rows: Iterable[CurrentRow | AggregateProduct]) -> InventorySummary:
    """Totals for a (possibly filtered) view."""
    rows = list(rows)
    levels = Counter(r.stock_level for r in rows)
    expiry_counts = Counter(r.expiry.status for r in rows if r.expiry is not None)
    return InventorySummary(
        row_count=len(rows),
        total_quantity=sum(r.quantity for r in rows),
        low_count=levels[StockLevel.LOW],
        out_count=levels[StockLevel.OUT],
        expiry_counts=dict(expiry_counts),
    )
