import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        scan_workers: int,
        budget_scan_minutes: int,
        goal_scan_hour: int,
        recurring_scan_hour: int,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.scan_workers = scan_workers
        self.budget_scan_minutes = budget_scan_minutes
        self.goal_scan_hour = goal_scan_hour
        self.recurring_scan_hour = recurring_scan_hour
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINWATCH_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "finwatch.db"
    database_url = os.getenv("FINWATCH_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("FINWATCH_TIMEZONE", "UTC")
    scan_workers = int(os.getenv("FINWATCH_SCAN_WORKERS", "4"))
    budget_scan_minutes = int(os.getenv("FINWATCH_BUDGET_SCAN_MINUTES", "60"))
    goal_scan_hour = int(os.getenv("FINWATCH_GOAL_SCAN_HOUR", "9"))
    recurring_scan_hour = int(os.getenv("FINWATCH_RECURRING_SCAN_HOUR", "8"))
    log_level = os.getenv("FINWATCH_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        scan_workers=scan_workers,
        budget_scan_minutes=budget_scan_minutes,
        goal_scan_hour=goal_scan_hour,
        recurring_scan_hour=recurring_scan_hour,
        log_level=log_level,
    )
