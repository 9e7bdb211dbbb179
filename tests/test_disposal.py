"""Tests for the write-off command."""

from datetime import datetime

import pytest

from batchledger.clock import FixedClock
from batchledger.disposal import DisposalError, dispose
from batchledger.models import Batch, BatchKey, WriteOff
from batchledger.ports import InMemoryEventStore

STORE = "store-1"


@pytest.fixture
def store():
    return InMemoryEventStore()


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 1, 11, 9, 0))


@pytest.fixture
def batch():
    return Batch(
        key=BatchKey("milk-1l", datetime(2024, 1, 10, 9, 0)),
        product_name="우유 1L",
        unit="개",
        current_quantity=35,
    )


def test_dispose_appends_write_off(store, clock, batch):
    record = dispose(
        batch, 35, "expired write-off",
        store=store, store_id=STORE, clock=clock, created_by="owner-7",
        new_id=lambda: "w-1",
    )

    assert isinstance(record, WriteOff)
    assert record.id == "w-1"
    assert record.batch_key == batch.key
    assert record.quantity == 35
    assert record.reason == "expired write-off"
    assert record.timestamp == clock.now()
    assert record.created_by == "owner-7"
    assert record.notes == "만료일: 2024-01-10"
    assert store.read_all(STORE) == [record]


def test_dispose_partial_quantity(store, clock, batch):
    record = dispose(batch, 5, "포장 파손", store=store, store_id=STORE, clock=clock)
    assert record.quantity == 5
    assert batch.current_quantity == 35  # the batch snapshot is untouched


def test_dispose_without_expiry_note(store, clock):
    batch = Batch(key=BatchKey("salt"), product_name="소금", unit="봉", current_quantity=3)
    record = dispose(batch, 1, "파손", store=store, store_id=STORE, clock=clock)
    assert record.notes == "만료일: 정보없음"


@pytest.mark.parametrize("quantity", [36, 0, -1])
def test_invalid_quantity_rejected(store, clock, batch, quantity):
    with pytest.raises(DisposalError):
        dispose(batch, quantity, "폐기", store=store, store_id=STORE, clock=clock)
    assert store.read_all(STORE) == []


def test_reason_required(store, clock, batch):
    with pytest.raises(DisposalError, match="사유"):
        dispose(batch, 1, "  ", store=store, store_id=STORE, clock=clock)
    assert store.read_all(STORE) == []


def test_disposal_error_is_value_error():
    assert issubclass(DisposalError, ValueError)
