# -*- coding: utf-8 -*-
"""
Perle Scheduler
===============
Keeps the process resident and triggers a cycle at the two configured
daily times (crontab syntax, e.g. "0 10 * * *").

APScheduler runs each job with max_instances=1 and coalesce=True; the
orchestrator's own guard still drops any trigger that overlaps a cycle
in flight.
"""

import logging
import signal
from typing import List, Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from pi_perle_stack.config.settings import ScheduleConfig, settings
from pi_perle_stack.errors import ConfigurationError
from pi_perle_stack.pipeline.orchestrator import CycleResult, WorkflowOrchestrator

logger = logging.getLogger("pipeline.scheduler")


class PerleScheduler:
    """Cron-style trigger source for the orchestrator."""

    def __init__(
        self,
        orchestrator: WorkflowOrchestrator,
        cfg: Optional[ScheduleConfig] = None,
        scheduler: Optional[BlockingScheduler] = None,
    ):
        self.orchestrator = orchestrator
        self.cfg = cfg or settings.schedule
        self.scheduler = scheduler or BlockingScheduler(timezone=self.cfg.timezone)

    @property
    def expressions(self) -> List[str]:
        return [expr for expr in (self.cfg.time1, self.cfg.time2) if expr.strip()]

    def register(self) -> None:
        """Add one cron job per configured time."""
        if not self.expressions:
            raise ConfigurationError("No schedule times configured")

        for index, expr in enumerate(self.expressions, start=1):
            try:
                trigger = CronTrigger.from_crontab(expr, timezone=self.cfg.timezone)
            except ValueError as exc:
                raise ConfigurationError(f"Invalid SCHEDULE_TIME_{index} '{expr}': {exc}") from exc
            self.scheduler.add_job(
                self.trigger,
                trigger=trigger,
                args=[f"time {index}"],
                id=f"perle-cycle-{index}",
                name=f"Perle cycle ({expr})",
                max_instances=1,
                coalesce=True,
                misfire_grace_time=15 * 60,
                replace_existing=True,
            )
            logger.info("Scheduled cycle %d: %s (%s)", index, expr, self.cfg.timezone)

    def trigger(self, label: str = "manual") -> CycleResult:
        logger.info("⏰ Scheduled job triggered (%s)", label)
        return self.orchestrator.run_cycle()

    def start(self) -> None:
        """Register jobs and block until SIGINT/SIGTERM."""
        self.register()
        signal.signal(signal.SIGTERM, self._handle_signal)
        signal.signal(signal.SIGINT, self._handle_signal)
        logger.info("🚀 Perle scheduler started. Press Ctrl+C to stop.")
        self.scheduler.start()
        logger.info("Scheduler stopped")

    def _handle_signal(self, signum, frame) -> None:
        logger.info("Shutting down gracefully (signal %d)...", signum)
        self.scheduler.shutdown(wait=False)
