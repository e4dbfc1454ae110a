import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        default_alert_threshold: int,
        recent_transactions: int,
        top_categories: int,
        trend_weeks: int,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.default_alert_threshold = default_alert_threshold
        self.recent_transactions = recent_transactions
        self.top_categories = top_categories
        self.trend_weeks = trend_weeks


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("SPENDSMART_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "spendsmart.db"
    database_url = os.getenv("SPENDSMART_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("SPENDSMART_TIMEZONE", "UTC")
    default_alert_threshold = int(
        os.getenv("SPENDSMART_DEFAULT_ALERT_THRESHOLD", "80")
    )
    recent_transactions = int(os.getenv("SPENDSMART_RECENT_TRANSACTIONS", "10"))
    top_categories = int(os.getenv("SPENDSMART_TOP_CATEGORIES", "5"))
    trend_weeks = int(os.getenv("SPENDSMART_TREND_WEEKS", "12"))
    return Settings(
        database_url=database_url,
        timezone=timezone,
        default_alert_threshold=default_alert_threshold,
        recent_transactions=recent_transactions,
        top_categories=top_categories,
        trend_weeks=trend_weeks,
    )
