"""Write-off command: the only path that appends to the event store."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable

from .clock import Clock
from .models import Batch, WriteOff
from .ports import EventStore

logger = logging.getLogger(__name__)

DEFAULT_REASON = "유통기한 만료로 인한 폐기"


class DisposalError(ValueError):
    """A write-off request failed validation; nothing was appended."""


def _expiry_note(batch: Batch) -> str:
    if batch.expires_at is None:
        return "만료일: 정보없음"
    return f"만료일: {batch.expires_at.date().isoformat()}"


def dispose(
    batch: Batch,
    quantity: int,
    reason: str,
    *,
    store: EventStore,
    store_id: str,
    clock: Clock,
    created_by: str | None = None,
    new_id: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> WriteOff:
    """Append a write-off of *quantity* units from *batch*.

    The batch object is not updated; refresh the projection to see the effect.

    Raises:
        DisposalError: If the reason is blank or the quantity is not within
            ``1..batch.current_quantity``.
    """
    if not reason or not reason.strip():
        raise DisposalError("폐기 사유를 입력해야 합니다")
    if quantity <= 0:
        raise DisposalError(f"폐기 수량은 1 이상이어야 합니다: {quantity}")
    if quantity > batch.current_quantity:
        raise DisposalError(
            f"폐기 수량이 배치 재고를 초과합니다 "
            f"(요청: {quantity}, 재고: {batch.current_quantity}, 배치: {batch.key})"
        )

    record = WriteOff(
        id=new_id(),
        batch_key=batch.key,
        timestamp=clock.now(),
        quantity=quantity,
        reason=reason.strip(),
        notes=_expiry_note(batch),
        created_by=created_by,
    )
    store.append(store_id, record)
    logger.info("폐기 처리: %s %d%s (%s)", batch.product_name, quantity, batch.unit, record.reason)
    return record
