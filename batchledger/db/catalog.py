"""Store product catalog and promotions backed by SQLite."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

from ..models import CatalogEntry, PromotionInfo
from ..ports import ProductCatalog, SourceUnavailableError
from .schema import ensure_schema


class SqliteProductCatalog(ProductCatalog):
    """Manages the store_products and promotion_products tables."""

    def __init__(self, db_path: str | Path = "~/.config/batchledger/inventory.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _query(self, sql: str, params: tuple) -> list[sqlite3.Row]:
        try:
            with self._lock:
                return self._get_conn().execute(sql, params).fetchall()
        except (sqlite3.Error, OSError) as e:
            raise SourceUnavailableError(f"상품 정보 조회 실패: {e}") from e

    def entries(self, store_id: str) -> dict[str, CatalogEntry]:
        rows = self._query(
            "SELECT * FROM store_products WHERE store_id = ? ORDER BY product_id",
            (store_id,),
        )
        return {
            r["product_id"]: CatalogEntry(
                product_id=r["product_id"],
                name=r["name"],
                unit=r["unit"],
                shelf_life_days=r["shelf_life_days"],
                base_price=r["base_price"],
                price=r["price"],
                safety_stock=r["safety_stock"],
                max_stock=r["max_stock"],
                is_available=bool(r["is_available"]),
                stock_quantity=r["stock_quantity"],
            )
            for r in rows
        }

    def promotions(self, store_id: str) -> dict[str, PromotionInfo]:
        rows = self._query(
            "SELECT * FROM promotion_products WHERE store_id = ?",
            (store_id,),
        )
        return {
            r["product_id"]: PromotionInfo(r["promotion_type"], r["promotion_name"])
            for r in rows
        }

    def upsert(self, store_id: str, entry: CatalogEntry) -> None:
        """Insert or update a store product."""
        with self._lock:
            conn = self._get_conn()
            conn.execute(
                """INSERT INTO store_products
                   (store_id, product_id, name, unit, shelf_life_days, base_price,
                    price, safety_stock, max_stock, is_available, stock_quantity)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(store_id, product_id) DO UPDATE SET
                     name=excluded.name,
                     unit=excluded.unit,
                     shelf_life_days=excluded.shelf_life_days,
                     base_price=excluded.base_price,
                     price=excluded.price,
                     safety_stock=excluded.safety_stock,
                     max_stock=excluded.max_stock,
                     is_available=excluded.is_available,
                     stock_quantity=excluded.stock_quantity,
                     updated_at=datetime('now', 'localtime')""",
                (
                    store_id,
                    entry.product_id,
                    entry.name,
                    entry.unit,
                    entry.shelf_life_days,
                    entry.base_price,
                    entry.price,
                    entry.safety_stock,
                    entry.max_stock,
                    int(entry.is_available),
                    entry.stock_quantity,
                ),
            )
            conn.commit()

    def set_promotion(
        self, store_id: str, product_id: str, promotion: PromotionInfo | None
    ) -> None:
        """Attach a promotion to a product, or clear it with ``None``."""
        with self._lock:
            conn = self._get_conn()
            if promotion is None:
                conn.execute(
                    "DELETE FROM promotion_products WHERE store_id = ? AND product_id = ?",
                    (store_id, product_id),
                )
            else:
                conn.execute(
                    """INSERT INTO promotion_products
                       (store_id, product_id, promotion_type, promotion_name)
                       VALUES (?, ?, ?, ?)
                       ON CONFLICT(store_id, product_id) DO UPDATE SET
                         promotion_type=excluded.promotion_type,
                         promotion_name=excluded.promotion_name""",
                    (store_id, product_id, promotion.promotion_type, promotion.promotion_name),
                )
            conn.commit()
