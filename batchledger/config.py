"""TOML configuration loader for the inventory ledger."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from .expiry import ExpiryThresholds

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]

_TOTAL_SOURCES = ("ledger", "recorded")


@dataclass
class StoreConfig:
    id: str = ""


@dataclass
class DatabaseConfig:
    path: str = "~/.config/batchledger/inventory.db"


@dataclass
class ExpiryConfig:
    danger_days: float = 3
    warning_days: float = 7

    @property
    def thresholds(self) -> ExpiryThresholds:
        return ExpiryThresholds.from_days(self.danger_days, self.warning_days)


@dataclass
class ViewsConfig:
    total_source: str = "ledger"  # "ledger" | "recorded"


@dataclass
class SchedulerConfig:
    enabled: bool = False
    interval_seconds: int = 60


@dataclass
class LedgerConfig:
    store: StoreConfig = field(default_factory=StoreConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    expiry: ExpiryConfig = field(default_factory=ExpiryConfig)
    views: ViewsConfig = field(default_factory=ViewsConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)


def load_config(path: str | Path | None = None) -> LedgerConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    The store id and database path can come from environment variables when
    the file leaves them empty.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    sto = raw.get("store", {})
    dbs = raw.get("database", {})
    exp = raw.get("expiry", {})
    vws = raw.get("views", {})
    sch = raw.get("scheduler", {})

    # Resolve store / database: config file → environment variable → default
    store_id = sto.get("id", "") or os.environ.get("BATCHLEDGER_STORE_ID", "")
    db_path = (
        dbs.get("path", "")
        or os.environ.get("BATCHLEDGER_DB_PATH", "")
        or DatabaseConfig.path
    )

    total_source = vws.get("total_source", "ledger")
    if total_source not in _TOTAL_SOURCES:
        raise ValueError(
            f"views.total_source 는 ledger / recorded 중 하나여야 합니다: {total_source!r}"
        )

    expiry = ExpiryConfig(
        danger_days=exp.get("danger_days", 3),
        warning_days=exp.get("warning_days", 7),
    )
    # Bad thresholds fail at load time rather than on first recompute
    ExpiryThresholds.from_days(expiry.danger_days, expiry.warning_days)

    return LedgerConfig(
        store=StoreConfig(id=str(store_id)),
        database=DatabaseConfig(path=db_path),
        expiry=expiry,
        views=ViewsConfig(total_source=total_source),
        scheduler=SchedulerConfig(
            enabled=sch.get("enabled", False),
            interval_seconds=sch.get("interval_seconds", 60),
        ),
    )
