"""Expiry urgency classification for batches."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from .clock import as_aware

_MINUTES_PER_HOUR = 60
_MINUTES_PER_DAY = 24 * _MINUTES_PER_HOUR

NO_EXPIRY_TEXT = "유통기한 없음"


class ExpiryStatus(Enum):
    NORMAL = "normal"
    WARNING = "warning"
    DANGER = "danger"
    EXPIRED = "expired"
    UNSET = "unset"

    @property
    def severity(self) -> int:
        """Urgency rank; for a fixed expiry it never decreases as time passes."""
        return _SEVERITY[self]

    @property
    def label(self) -> str:
        return _LABELS[self]


_SEVERITY = {
    ExpiryStatus.UNSET: 0,
    ExpiryStatus.NORMAL: 1,
    ExpiryStatus.WARNING: 2,
    ExpiryStatus.DANGER: 3,
    ExpiryStatus.EXPIRED: 4,
}

_LABELS = {
    ExpiryStatus.UNSET: "정상",
    ExpiryStatus.NORMAL: "정상",
    ExpiryStatus.WARNING: "임박",
    ExpiryStatus.DANGER: "위험",
    ExpiryStatus.EXPIRED: "만료",
}


@dataclass(frozen=True)
class ExpiryThresholds:
    danger_minutes: int = 3 * _MINUTES_PER_DAY
    warning_minutes: int = 7 * _MINUTES_PER_DAY

    def __post_init__(self) -> None:
        if not 0 < self.danger_minutes <= self.warning_minutes:
            raise ValueError(
                "임계값은 0 < danger_minutes <= warning_minutes 를 만족해야 합니다"
            )

    @classmethod
    def from_days(cls, danger_days: float, warning_days: float) -> ExpiryThresholds:
        return cls(
            danger_minutes=int(danger_days * _MINUTES_PER_DAY),
            warning_minutes=int(warning_days * _MINUTES_PER_DAY),
        )


DEFAULT_THRESHOLDS = ExpiryThresholds()


@dataclass(frozen=True)
class ExpiryInfo:
    status: ExpiryStatus
    expires_at: datetime | None = None
    days: int = 0
    hours: int = 0
    minutes: int = 0
    remaining_text: str = NO_EXPIRY_TEXT

    @property
    def total_minutes(self) -> int:
        return self.days * _MINUTES_PER_DAY + self.hours * _MINUTES_PER_HOUR + self.minutes


def format_remaining(days: int, hours: int, minutes: int) -> str:
    """Format a remaining duration, dropping leading zero components."""
    if days > 0:
        return f"{days}일 {hours}시간 {minutes}분"
    if hours > 0:
        return f"{hours}시간 {minutes}분"
    if minutes > 0:
        return f"{minutes}분"
    return "0분"


def minutes_until(expires_at: datetime, now: datetime) -> int:
    """Whole minutes from *now* until *expires_at*, truncated toward zero."""
    if (expires_at.tzinfo is None) != (now.tzinfo is None):
        expires_at, now = as_aware(expires_at), as_aware(now)
    delta = expires_at - now
    whole = abs(delta) // timedelta(minutes=1)
    return whole if delta >= timedelta(0) else -whole


def classify(
    expires_at: datetime | None,
    now: datetime,
    thresholds: ExpiryThresholds = DEFAULT_THRESHOLDS,
) -> ExpiryInfo:
    """Classify a batch's time to expiry.

    Pure function of its arguments: the caller supplies *now* (usually from a
    ``Clock``) on every recompute.
    """
    if expires_at is None:
        return ExpiryInfo(status=ExpiryStatus.UNSET)

    diff = minutes_until(expires_at, now)
    if diff <= 0:
        return ExpiryInfo(
            status=ExpiryStatus.EXPIRED,
            expires_at=expires_at,
            remaining_text=format_remaining(0, 0, 0),
        )

    if diff <= thresholds.danger_minutes:
        status = ExpiryStatus.DANGER
    elif diff <= thresholds.warning_minutes:
        status = ExpiryStatus.WARNING
    else:
        status = ExpiryStatus.NORMAL

    days, rest = divmod(diff, _MINUTES_PER_DAY)
    hours, minutes = divmod(rest, _MINUTES_PER_HOUR)
    return ExpiryInfo(
        status=status,
        expires_at=expires_at,
        days=days,
        hours=hours,
        minutes=minutes,
        remaining_text=format_remaining(days, hours, minutes),
    )
