"""Tests for recompute and InventoryService."""

from datetime import datetime

import pytest

from batchledger.clock import FixedClock
from batchledger.config import load_config
from batchledger.db import SqliteEventStore, SqliteProductCatalog
from batchledger.disposal import DisposalError
from batchledger.expiry import ExpiryStatus
from batchledger.filters import InventoryFilter
from batchledger.models import BatchKey, CatalogEntry, PromotionInfo, Receipt, Sale, WriteOff
from batchledger.ports import (
    InMemoryCatalog,
    InMemoryEventStore,
    SourceUnavailableError,
)
from batchledger import service as service_module
from batchledger.service import InventoryService, RecomputeError, Snapshot, recompute
from batchledger.views import TotalSource

STORE = "gangnam-01"
MILK = BatchKey("milk-1l", datetime(2024, 1, 10, 9, 0))


def _milk_catalog() -> InMemoryCatalog:
    catalog = InMemoryCatalog()
    catalog.add(
        STORE,
        CatalogEntry(
            "milk-1l", "Milk-1L", unit="개", shelf_life_days=10, safety_stock=10,
        ),
    )
    return catalog


def _milk_records():
    return [
        Receipt(id="t1", batch_key=MILK, timestamp=datetime(2024, 1, 1, 9), quantity=50),
        Sale(id="t2", batch_key=MILK, timestamp=datetime(2024, 1, 2, 9), quantity=10),
        WriteOff(id="t3", batch_key=MILK, timestamp=datetime(2024, 1, 3, 9), quantity=5),
    ]


@pytest.fixture
def events():
    store = InMemoryEventStore()
    store.extend(STORE, _milk_records())
    return store


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 1, 8, 9, 0))


@pytest.fixture
def service(events, clock):
    return InventoryService(STORE, events, _milk_catalog(), clock)


class _BrokenStore(InMemoryEventStore):
    def __init__(self) -> None:
        super().__init__()
        self.broken = False

    def read_all(self, store_id):
        if self.broken:
            raise SourceUnavailableError("connection refused")
        return super().read_all(store_id)


def test_milk_scenario(service, clock):
    projection = service.refresh()
    [row] = projection.current
    assert row.quantity == 35
    assert row.expiry.status is ExpiryStatus.DANGER
    assert row.expiry.remaining_text == "2일 0시간 0분"

    clock.set(datetime(2024, 1, 11, 9, 0))
    projection = service.refresh()
    assert projection.current[0].expiry.status is ExpiryStatus.EXPIRED

    record = service.dispose(MILK, 35, "expired write-off")
    assert isinstance(record, WriteOff)
    # Nothing changes until the next recompute
    assert service.projection.current[0].quantity == 35

    projection = service.notify()
    assert projection.ledger.get(MILK).current_quantity == 0
    assert projection.current == []
    [product] = projection.all_products
    assert product.product_id == "milk-1l"
    assert product.total_quantity == 0


def test_dispose_accepts_text_batch_key(service):
    service.refresh()
    record = service.dispose(str(MILK), 3, "파손")
    assert record.batch_key == MILK
    assert service.refresh().ledger.get(MILK).current_quantity == 32


def test_dispose_does_not_need_a_refresh(service, events):
    service.dispose(MILK, 35, "파손")
    assert len(events.read_all(STORE)) == 4
    assert service.projection is None


def test_dispose_counts_sales_since_last_refresh(service, events):
    assert service.refresh().ledger.get(MILK).current_quantity == 35
    # Another till sells from the same batch before the next refresh
    events.append(
        STORE, Sale(id="t9", batch_key=MILK, timestamp=datetime(2024, 1, 7, 9), quantity=30)
    )

    with pytest.raises(DisposalError):
        service.dispose(MILK, 35, "폐기")
    assert len(events.read_all(STORE)) == 4

    service.dispose(MILK, 5, "폐기")
    assert service.refresh().ledger.get(MILK).current_quantity == 0


def test_dispose_unknown_batch_rejected(service):
    service.refresh()
    with pytest.raises(DisposalError, match="배치"):
        service.dispose(BatchKey("milk-1l"), 1, "파손")


def test_dispose_over_quantity_not_appended(service, events):
    service.refresh()
    with pytest.raises(DisposalError):
        service.dispose(MILK, 36, "폐기")
    assert len(events.read_all(STORE)) == 3


def test_failed_refresh_keeps_previous_projection(clock):
    events = _BrokenStore()
    events.extend(STORE, _milk_records())
    service = InventoryService(STORE, events, _milk_catalog(), clock)
    first = service.refresh()

    events.broken = True
    with pytest.raises(RecomputeError):
        service.refresh()
    assert service.projection is first


class _BrokenCatalog(InMemoryCatalog):
    def __init__(self) -> None:
        super().__init__()
        self.broken_entries = False
        self.broken_promotions = False

    def entries(self, store_id):
        if self.broken_entries:
            raise SourceUnavailableError("catalog timeout")
        return super().entries(store_id)

    def promotions(self, store_id):
        if self.broken_promotions:
            raise SourceUnavailableError("catalog timeout")
        return super().promotions(store_id)


@pytest.mark.parametrize("broken", ["broken_entries", "broken_promotions"])
def test_failed_catalog_keeps_previous_projection(events, clock, broken):
    catalog = _BrokenCatalog()
    catalog.add(STORE, CatalogEntry("milk-1l", "Milk-1L", safety_stock=10))
    service = InventoryService(STORE, events, catalog, clock)
    first = service.refresh()

    setattr(catalog, broken, True)
    with pytest.raises(RecomputeError):
        service.refresh()
    assert service.projection is first


def test_failed_recompute_keeps_previous_projection(service, monkeypatch):
    first = service.refresh()

    def boom(*args, **kwargs):
        raise TypeError("bad record")

    monkeypatch.setattr(service_module, "current_view", boom)
    with pytest.raises(RecomputeError):
        service.refresh()
    assert service.projection is first


def test_system_clock_disposal_over_naive_records(events):
    service = InventoryService(STORE, events, _milk_catalog())
    service.dispose(MILK, 35, "expired write-off")

    projection = service.refresh()
    batch = projection.ledger.get(MILK)
    assert batch.current_quantity == 0
    assert batch.history[-1].record.timestamp.tzinfo is not None
    assert projection.current == []

def test_recompute_is_deterministic():
    catalog = _milk_catalog().entries(STORE)
    records = tuple(_milk_records())
    now = datetime(2024, 1, 8, 9, 0)
    a = recompute(Snapshot(STORE, records, catalog), now)
    b = recompute(Snapshot(STORE, tuple(reversed(records)), catalog), now)
    assert a == b


def test_projection_filters():
    catalog = _milk_catalog()
    catalog.set_promotion(STORE, "milk-1l", PromotionInfo("buy_one_get_one", "1+1"))
    snapshot = Snapshot(
        STORE, tuple(_milk_records()), catalog.entries(STORE), catalog.promotions(STORE)
    )
    projection = recompute(snapshot, datetime(2024, 1, 8, 9, 0))
    assert len(projection.filter_current(InventoryFilter.build(promotion="buy_one_get_one"))) == 1
    assert projection.filter_all(InventoryFilter.build(stock="low")) == []


def test_recorded_total_source(events, clock):
    catalog = InMemoryCatalog()
    catalog.add(STORE, CatalogEntry("milk-1l", "Milk-1L", stock_quantity=30))
    service = InventoryService(
        STORE, events, catalog, clock, total_source=TotalSource.RECORDED
    )
    [product] = service.refresh().all_products
    assert product.total_quantity == 30
    assert product.ledger_quantity == 35
    assert not product.is_reconciled


def test_service_over_sqlite(tmp_path, clock):
    db_path = tmp_path / "inventory.db"
    events = SqliteEventStore(db_path)
    catalog = SqliteProductCatalog(db_path)
    try:
        catalog.upsert(STORE, CatalogEntry("milk-1l", "Milk-1L", shelf_life_days=10))
        for record in _milk_records():
            events.append(STORE, record)

        service = InventoryService(STORE, events, catalog, clock)
        assert service.refresh().current[0].quantity == 35

        service.dispose(MILK, 35, "expired write-off")
        projection = service.refresh()
        assert projection.current == []
        assert projection.all_products[0].total_quantity == 0
    finally:
        events.close()
        catalog.close()


def test_service_from_config(events, clock, monkeypatch):
    monkeypatch.setenv("BATCHLEDGER_STORE_ID", STORE)
    config = load_config()
    config.expiry.danger_days = 1
    config.expiry.warning_days = 2

    service = InventoryService.from_config(config, events, _milk_catalog(), clock)
    assert service.store_id == STORE
    [row] = service.refresh().current
    assert row.expiry.status is ExpiryStatus.WARNING
