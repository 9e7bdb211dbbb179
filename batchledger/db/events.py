"""SQLite-backed event store for inventory transactions."""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path

from ..models import TRANSACTION_TYPES, Adjustment, BatchKey, TransactionRecord, WriteOff
from ..ports import EventStore, SourceUnavailableError
from .schema import ensure_schema

logger = logging.getLogger(__name__)


def record_to_row(store_id: str, record: TransactionRecord) -> dict:
    """Flatten a record into inventory_transactions column values."""
    row = {
        "id": record.id,
        "store_id": store_id,
        "product_id": record.product_id,
        "expires_at": record.expires_at.isoformat() if record.expires_at else None,
        "transaction_type": record.kind,
        "quantity": None,
        "new_quantity": None,
        "reason": None,
        "notes": record.notes,
        "created_by": record.created_by,
        "occurred_at": record.timestamp.isoformat(),
    }
    if isinstance(record, Adjustment):
        row["new_quantity"] = record.new_quantity
    else:
        row["quantity"] = record.quantity
    if isinstance(record, WriteOff):
        row["reason"] = record.reason
    return row


def row_to_record(row: sqlite3.Row | dict) -> TransactionRecord:
    """Rebuild the typed record from a stored row."""
    kind = row["transaction_type"]
    try:
        cls = TRANSACTION_TYPES[kind]
    except KeyError:
        raise ValueError(f"알 수 없는 트랜잭션 유형: {kind!r}") from None

    expires_at = row["expires_at"]
    common = {
        "id": row["id"],
        "batch_key": BatchKey(
            row["product_id"],
            datetime.fromisoformat(expires_at) if expires_at else None,
        ),
        "timestamp": datetime.fromisoformat(row["occurred_at"]),
        "notes": row["notes"] or "",
        "created_by": row["created_by"],
    }
    if cls is Adjustment:
        return Adjustment(new_quantity=row["new_quantity"], **common)
    if cls is WriteOff:
        return WriteOff(quantity=row["quantity"], reason=row["reason"] or "", **common)
    return cls(quantity=row["quantity"], **common)


class SqliteEventStore(EventStore):
    """Manages the inventory_transactions table."""

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

    def read_all(self, store_id: str) -> list[TransactionRecord]:
        """Return every record for the store in storage order."""
        try:
            with self._lock:
                rows = self._get_conn().execute(
                    "SELECT * FROM inventory_transactions WHERE store_id = ? ORDER BY rowid",
                    (store_id,),
                ).fetchall()
        except (sqlite3.Error, OSError) as e:
            raise SourceUnavailableError(f"트랜잭션 조회 실패: {e}") from e
        return [row_to_record(r) for r in rows]

    def append(self, store_id: str, record: TransactionRecord) -> None:
        row = record_to_row(store_id, record)
        columns = ", ".join(row)
        placeholders = ", ".join(f":{c}" for c in row)
        try:
            with self._lock:
                conn = self._get_conn()
                conn.execute(
                    f"INSERT INTO inventory_transactions ({columns}) VALUES ({placeholders})",
                    row,
                )
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise ValueError(f"트랜잭션을 기록할 수 없습니다: {record.id} ({e})") from e
        except (sqlite3.Error, OSError) as e:
            raise SourceUnavailableError(f"트랜잭션 기록 실패: {e}") from e
        logger.debug("트랜잭션 기록: %s %s", record.kind, record.id)
