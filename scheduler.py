import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config import Settings, get_settings
from monitor import MonitorService, ScanKind, ScanResult


logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)


class SchedulerManager:
    def __init__(
        self,
        monitor: Optional[MonitorService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.monitor = monitor or MonitorService(workers=self.settings.scan_workers)
        self.scheduler = BackgroundScheduler(timezone=self.settings.timezone)

    def run_scan(self, kind: ScanKind, source: str = "manual") -> Optional[ScanResult]:
        logger.info(f"scheduler_run: kind={kind.value} source={source}")
        try:
            return self.monitor.run(kind)
        except Exception:
            logger.exception(f"scheduler_run_failed: kind={kind.value} source={source}")
            return None

    def configure(self) -> None:
        self.scheduler.add_job(
            self.run_scan,
            IntervalTrigger(
                minutes=self.settings.budget_scan_minutes,
                timezone=self.settings.timezone,
            ),
            args=[ScanKind.budget, "interval"],
            id="budget_scan",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )
        self.scheduler.add_job(
            self.run_scan,
            CronTrigger(
                hour=self.settings.goal_scan_hour,
                minute=0,
                timezone=self.settings.timezone,
            ),
            args=[ScanKind.goal, "daily"],
            id="goal_scan",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )
        self.scheduler.add_job(
            self.run_scan,
            CronTrigger(
                hour=self.settings.recurring_scan_hour,
                minute=0,
                timezone=self.settings.timezone,
            ),
            args=[ScanKind.recurring, "daily"],
            id="recurring_scan",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )

    def start(self) -> None:
        self.configure()
        self.scheduler.start()
        logger.info(
            f"Scheduler started: budget every {self.settings.budget_scan_minutes}m, "
            f"goals daily {self.settings.goal_scan_hour:02d}:00, "
            f"recurring daily {self.settings.recurring_scan_hour:02d}:00"
        )

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
