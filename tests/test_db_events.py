"""Tests for the SQLite event store and product catalog."""

from datetime import datetime, timedelta, timezone

import pytest

from batchledger.db import SqliteEventStore, SqliteProductCatalog
from batchledger.db.events import record_to_row, row_to_record
from batchledger.models import (
    Adjustment,
    BatchKey,
    CatalogEntry,
    PromotionInfo,
    Receipt,
    Return,
    Sale,
    WriteOff,
)
from batchledger.ports import SourceUnavailableError

KST = timezone(timedelta(hours=9))
EGGS = BatchKey("eggs-10", datetime(2024, 2, 14, 0, 0, tzinfo=KST))


@pytest.fixture
def events(tmp_path):
    store = SqliteEventStore(db_path=tmp_path / "test.db")
    yield store
    store.close()


@pytest.fixture
def catalog(tmp_path):
    cat = SqliteProductCatalog(db_path=tmp_path / "test.db")
    yield cat
    cat.close()


@pytest.fixture
def sample_records():
    ts = datetime(2024, 2, 1, 10, 0, tzinfo=KST)
    return [
        Receipt(id="r1", batch_key=EGGS, timestamp=ts, quantity=24, created_by="u1"),
        Sale(id="s1", batch_key=EGGS, timestamp=ts + timedelta(hours=1), quantity=3),
        Return(id="b1", batch_key=EGGS, timestamp=ts + timedelta(hours=2), quantity=1, notes="고객 반품"),
        Adjustment(id="a1", batch_key=EGGS, timestamp=ts + timedelta(days=1), new_quantity=20),
        WriteOff(id="w1", batch_key=BatchKey("tofu"), timestamp=ts, quantity=2, reason="파손"),
    ]


def test_append_and_read_back(events, sample_records):
    for record in sample_records:
        events.append("store-1", record)

    assert events.read_all("store-1") == sample_records


def test_read_is_scoped_to_store(events, sample_records):
    events.append("store-1", sample_records[0])
    events.append("store-2", sample_records[1])

    assert [r.id for r in events.read_all("store-1")] == ["r1"]
    assert events.read_all("store-3") == []


def test_duplicate_id_rejected(events, sample_records):
    events.append("store-1", sample_records[0])
    with pytest.raises(ValueError):
        events.append("store-1", sample_records[0])
    assert len(events.read_all("store-1")) == 1


def test_row_columns_per_type(sample_records):
    adjustment = record_to_row("s", sample_records[3])
    assert adjustment["transaction_type"] == "adjustment"
    assert adjustment["quantity"] is None
    assert adjustment["new_quantity"] == 20

    write_off = record_to_row("s", sample_records[4])
    assert write_off["transaction_type"] == "write_off"
    assert write_off["expires_at"] is None
    assert write_off["reason"] == "파손"


def test_unknown_row_type_rejected():
    row = {
        "id": "x",
        "product_id": "p",
        "expires_at": None,
        "transaction_type": "in",
        "quantity": 1,
        "new_quantity": None,
        "reason": None,
        "notes": "",
        "created_by": None,
        "occurred_at": "2024-01-01T00:00:00",
    }
    with pytest.raises(ValueError, match="in"):
        row_to_record(row)


def test_unreadable_database_raises_source_unavailable(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    store = SqliteEventStore(db_path=blocker / "test.db")
    with pytest.raises(SourceUnavailableError):
        store.read_all("store-1")


def test_catalog_upsert_and_entries(catalog):
    catalog.upsert("store-1", CatalogEntry("eggs-10", "계란 10구", unit="판", safety_stock=5))
    catalog.upsert(
        "store-1",
        CatalogEntry("eggs-10", "계란 10구", unit="판", safety_stock=8, stock_quantity=12),
    )
    catalog.upsert("store-2", CatalogEntry("tofu", "두부", is_available=False))

    entries = catalog.entries("store-1")
    assert list(entries) == ["eggs-10"]
    eggs = entries["eggs-10"]
    assert eggs.safety_stock == 8
    assert eggs.stock_quantity == 12
    assert eggs.is_available is True
    assert catalog.entries("store-2")["tofu"].is_available is False


def test_catalog_promotions(catalog):
    catalog.set_promotion("store-1", "eggs-10", PromotionInfo("buy_two_get_one", "2+1"))
    assert catalog.promotions("store-1") == {
        "eggs-10": PromotionInfo("buy_two_get_one", "2+1")
    }

    catalog.set_promotion("store-1", "eggs-10", None)
    assert catalog.promotions("store-1") == {}
