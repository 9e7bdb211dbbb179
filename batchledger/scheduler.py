"""Recompute triggers: interval polling and change notifications."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import LedgerConfig
    from .service import InventoryService

logger = logging.getLogger(__name__)


class RecomputeScheduler:
    """Drives ``InventoryService.refresh`` from outside the pure core.

    Uses APScheduler: an interval job polls when enabled, and ``notify``
    queues an immediate one-off refresh for push-style change signals.
    """

    def __init__(self, service: InventoryService, config: LedgerConfig) -> None:
        """Initialize scheduler for a service.

        Args:
            service: The InventoryService to refresh.
            config: LedgerConfig instance.

        Raises:
            ImportError: If apscheduler is not installed.
        """
        try:
            from apscheduler.schedulers.background import BackgroundScheduler
            from apscheduler.triggers.interval import IntervalTrigger
        except ImportError:
            raise ImportError(
                "apscheduler 가 필요합니다: pip install 'batchledger[scheduler]'"
            )

        self._service = service
        self._config = config
        self._scheduler = BackgroundScheduler()
        self._IntervalTrigger = IntervalTrigger
        self._running = False

    def setup_jobs(self) -> None:
        """Register scheduled jobs based on config."""
        if self._config.scheduler.enabled:
            seconds = self._config.scheduler.interval_seconds
            if seconds <= 0:
                raise ValueError(f"잘못된 재계산 주기: {seconds}")
            self._scheduler.add_job(
                self._job_refresh,
                trigger=self._IntervalTrigger(seconds=seconds),
                id="refresh_projection",
                name="재고 재계산",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            logger.info("재고 재계산 작업 등록: %d초 간격", seconds)

    def start(self) -> None:
        """Start the scheduler."""
        self.setup_jobs()
        self._scheduler.start()
        self._running = True
        logger.info("스케줄러 시작")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("스케줄러 중지")

    @property
    def running(self) -> bool:
        return self._running

    def notify(self) -> None:
        """Change signal received: queue a full refresh to run now.

        Repeated signals before the refresh runs collapse into one.
        """
        if self._scheduler.get_job("notify_refresh") is not None:
            return
        self._scheduler.add_job(
            self._job_refresh,
            id="notify_refresh",
            name="변경 알림 재계산",
            replace_existing=True,
        )

    def get_jobs(self) -> list[dict]:
        """Return info about scheduled jobs."""
        jobs = []
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": str(next_run) if next_run else None,
            })
        return jobs

    def _job_refresh(self) -> None:
        """Recompute the projection; failures keep the previous one."""
        try:
            self._service.refresh()
        except Exception:
            logger.exception("재고 재계산 작업에서 오류가 발생했습니다")
