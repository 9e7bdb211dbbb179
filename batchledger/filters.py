"""Composable filters over the current and all-products views."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, TypeVar

from .expiry import ExpiryStatus
from .models import PROMOTION_TYPES

ALL = "all"

STOCK_FILTERS = (ALL, "low", "out")
EXPIRY_FILTERS = (ALL, "normal", "warning", "danger", "expired")
PROMOTION_FILTERS = (ALL, *PROMOTION_TYPES)


class Row(Protocol):
    product_name: str
    unit: str
    quantity: int
    safety_stock: int
    expiry: object
    promotion: object


R = TypeVar("R")


@dataclass(frozen=True)
class StockFilter:
    level: str  # "low" | "out"

    def __call__(self, row: Row) -> bool:
        if self.level == "out":
            return row.quantity <= 0
        return row.quantity <= row.safety_stock


@dataclass(frozen=True)
class ExpiryFilter:
    status: ExpiryStatus

    def __call__(self, row: Row) -> bool:
        expiry = row.expiry
        if expiry is None:
            # All-products rows have no single expiry
            return True
        if expiry.status is ExpiryStatus.UNSET:
            return self.status is ExpiryStatus.NORMAL
        return expiry.status is self.status


@dataclass(frozen=True)
class PromotionFilter:
    promotion_type: str

    def __call__(self, row: Row) -> bool:
        promotion = row.promotion
        return promotion is not None and promotion.promotion_type == self.promotion_type


@dataclass(frozen=True)
class SearchFilter:
    query: str  # already lower-cased and trimmed

    def __call__(self, row: Row) -> bool:
        return self.query in row.product_name.lower() or self.query in row.unit.lower()


def _check(value: str, allowed: tuple[str, ...], what: str) -> str:
    if value not in allowed:
        raise ValueError(f"알 수 없는 {what} 필터: {value!r} ({' / '.join(allowed)})")
    return value


@dataclass(frozen=True)
class InventoryFilter:
    """A conjunction of row predicates.

    Filters combine with ``&``. Because the predicates are held as a set, the
    combination is associative and order-independent, and applying two filters
    one after the other selects the same rows as applying their conjunction.
    """

    predicates: frozenset = frozenset()

    @classmethod
    def build(
        cls,
        stock: str = ALL,
        expiry: str = ALL,
        promotion: str = ALL,
        search: str = "",
    ) -> InventoryFilter:
        predicates = set()
        if _check(stock, STOCK_FILTERS, "재고") != ALL:
            predicates.add(StockFilter(stock))
        if _check(expiry, EXPIRY_FILTERS, "유통기한") != ALL:
            predicates.add(ExpiryFilter(ExpiryStatus(expiry)))
        if _check(promotion, PROMOTION_FILTERS, "행사") != ALL:
            predicates.add(PromotionFilter(promotion))
        query = search.strip().lower()
        if query:
            predicates.add(SearchFilter(query))
        return cls(frozenset(predicates))

    def __and__(self, other: InventoryFilter) -> InventoryFilter:
        if not isinstance(other, InventoryFilter):
            return NotImplemented
        return InventoryFilter(self.predicates | other.predicates)

    def __bool__(self) -> bool:
        return bool(self.predicates)

    def matches(self, row: Row) -> bool:
        return all(predicate(row) for predicate in self.predicates)

    def apply(self, rows: Iterable[R]) -> list[R]:
        """Keep the rows every predicate accepts, preserving their order."""
        return [row for row in rows if self.matches(row)]


def apply_filters(rows: Iterable[R], *filters: InventoryFilter) -> list[R]:
    combined = InventoryFilter()
    for f in filters:
        combined = combined & f
    return combined.apply(rows)
