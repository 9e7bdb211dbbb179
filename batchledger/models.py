"""Data models for stock-movement records, catalog entries and batches."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Union

from .clock import as_aware

_NO_EXPIRY = "no_expiry"

# Promotion types recognised by the store back office
PROMOTION_TYPES: tuple[str, ...] = ("buy_one_get_one", "buy_two_get_one")


@dataclass(frozen=True)
class BatchKey:
    """Identifies a batch: the same product with the same expiry instant."""

    product_id: str
    expires_at: datetime | None = None

    def __str__(self) -> str:
        suffix = self.expires_at.isoformat() if self.expires_at else _NO_EXPIRY
        return f"{self.product_id}_{suffix}"

    @classmethod
    def parse(cls, text: str) -> BatchKey:
        """Inverse of ``str(key)``."""
        if text.endswith("_" + _NO_EXPIRY):
            product_id, expires_at = text[: -len(_NO_EXPIRY) - 1], None
        else:
            product_id, _, suffix = text.rpartition("_")
            try:
                expires_at = datetime.fromisoformat(suffix)
            except ValueError:
                raise ValueError(f"잘못된 배치 키: {text!r}") from None
        if not product_id:
            raise ValueError(f"잘못된 배치 키: {text!r}")
        return cls(product_id, expires_at)


@dataclass(frozen=True, kw_only=True)
class _Transaction:
    id: str
    batch_key: BatchKey
    timestamp: datetime
    notes: str = ""
    created_by: str | None = None

    kind: ClassVar[str] = ""

    @property
    def product_id(self) -> str:
        return self.batch_key.product_id

    @property
    def expires_at(self) -> datetime | None:
        return self.batch_key.expires_at

    @property
    def sort_key(self) -> tuple[datetime, str]:
        """Fold order: event time, then id for records sharing a timestamp."""
        return (as_aware(self.timestamp), self.id)

    def apply(self, running: int) -> int:
        """Return the batch quantity after this record is applied."""
        raise NotImplementedError


@dataclass(frozen=True, kw_only=True)
class _Movement(_Transaction):
    quantity: int  # magnitude, never negative

    sign: ClassVar[int] = 1

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(
                f"수량은 0 이상이어야 합니다: {self.kind} {self.id} ({self.quantity})"
            )

    def apply(self, running: int) -> int:
        return running + self.sign * self.quantity


@dataclass(frozen=True, kw_only=True)
class Receipt(_Movement):
    """Goods received into the store."""

    kind: ClassVar[str] = "receipt"


@dataclass(frozen=True, kw_only=True)
class Sale(_Movement):
    kind: ClassVar[str] = "sale"
    sign: ClassVar[int] = -1


@dataclass(frozen=True, kw_only=True)
class Return(_Movement):
    """Customer return; stock goes back on the shelf."""

    kind: ClassVar[str] = "return"


@dataclass(frozen=True, kw_only=True)
class WriteOff(_Movement):
    """Stock removed because of disposal or expiry."""

    reason: str = ""

    kind: ClassVar[str] = "write_off"
    sign: ClassVar[int] = -1


@dataclass(frozen=True, kw_only=True)
class Adjustment(_Transaction):
    """Manual stock count: sets the batch to an absolute quantity."""

    new_quantity: int

    kind: ClassVar[str] = "adjustment"

    def __post_init__(self) -> None:
        if self.new_quantity < 0:
            raise ValueError(
                f"조정 수량은 0 이상이어야 합니다: {self.id} ({self.new_quantity})"
            )

    def apply(self, running: int) -> int:
        return self.new_quantity


TransactionRecord = Union[Receipt, Sale, Return, Adjustment, WriteOff]

TRANSACTION_TYPES: dict[str, type] = {
    cls.kind: cls for cls in (Receipt, Sale, Return, Adjustment, WriteOff)
}


@dataclass(frozen=True)
class PromotionInfo:
    promotion_type: str  # "buy_one_get_one" | "buy_two_get_one"
    promotion_name: str = ""


@dataclass(frozen=True)
class CatalogEntry:
    """A product as the store carries it (product master + store settings)."""

    product_id: str
    name: str
    unit: str = "개"
    shelf_life_days: int | None = None
    base_price: int = 0
    price: int = 0
    safety_stock: int = 0
    max_stock: int = 0
    is_available: bool = True
    stock_quantity: int | None = None  # stored total, when the store keeps one


class StockLevel(Enum):
    OUT = "out"
    LOW = "low"
    SUFFICIENT = "sufficient"

    @property
    def label(self) -> str:
        return _STOCK_LABELS[self]


_STOCK_LABELS = {
    StockLevel.OUT: "품절",
    StockLevel.LOW: "부족",
    StockLevel.SUFFICIENT: "충분",
}


def stock_level(quantity: int, safety_stock: int) -> StockLevel:
    if quantity <= 0:
        return StockLevel.OUT
    if quantity <= safety_stock:
        return StockLevel.LOW
    return StockLevel.SUFFICIENT


@dataclass(frozen=True)
class LedgerEntry:
    """One step of a batch fold, kept for audit display."""

    record: TransactionRecord
    quantity_before: int
    quantity_after: int

    @property
    def delta(self) -> int:
        return self.quantity_after - self.quantity_before


@dataclass(frozen=True)
class Batch:
    """Reconstructed state of one batch. Rebuilt on every recompute."""

    key: BatchKey
    product_name: str
    unit: str
    current_quantity: int
    safety_stock: int = 0
    max_stock: int = 0
    price: int = 0
    is_available: bool = True
    history: tuple[LedgerEntry, ...] = field(default=(), repr=False)

    @property
    def product_id(self) -> str:
        return self.key.product_id

    @property
    def expires_at(self) -> datetime | None:
        return self.key.expires_at

    @property
    def stock_level(self) -> StockLevel:
        return stock_level(self.current_quantity, self.safety_stock)
