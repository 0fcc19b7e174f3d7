import os
from dataclasses import dataclass
from datetime import timedelta


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/stockkeeper_db")

# Application Metadata
PROJECT_NAME = "Stockkeeper Inventory Service"
VERSION = "1.0.0"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Outbox Poller Configuration (delivers alert notifications after commit)
POLLING_INTERVAL = int(os.getenv("POLLING_INTERVAL", 1)) # Poller checks for new events every N seconds
MAX_ATTEMPTS = int(os.getenv("MAX_ATTEMPTS", 5)) # Max retries for an event
BATCH_SIZE = int(os.getenv("BATCH_SIZE", 50)) # How many events to fetch per poll
OUTBOX_POLLER_ENABLED = _flag("OUTBOX_POLLER_ENABLED", "true")

# Safety-stock alert policy
CRITICAL_STOCK_RATIO = float(os.getenv("CRITICAL_STOCK_RATIO", 0.2)) # effective/threshold below this is CRITICAL
SIGNIFICANT_CHANGE_RATIO = float(os.getenv("SIGNIFICANT_CHANGE_RATIO", 0.10)) # fraction of threshold
ALERT_REFRESH_HOURS = int(os.getenv("ALERT_REFRESH_HOURS", 24))
ALERT_FALLBACK_EMAIL = os.getenv("ALERT_FALLBACK_EMAIL", "inventory-alerts@example.com")

# Email (SMTP). When SMTP_HOST is unset, notifications are written to the log instead.
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
SMTP_USERNAME = os.getenv("SMTP_USERNAME")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_USE_SSL = _flag("SMTP_USE_SSL", "false")
EMAIL_SENDER = os.getenv("EMAIL_SENDER", "noreply@stockkeeper.local")
COMPANY_NAME = os.getenv("COMPANY_NAME", "Stockkeeper")

# Alert digest schedule
DIGEST_ENABLED = _flag("DIGEST_ENABLED", "true")
DIGEST_HOUR = int(os.getenv("DIGEST_HOUR", 9))
DIGEST_TIMEZONE = os.getenv("DIGEST_TIMEZONE", "America/Los_Angeles")


@dataclass(frozen=True)
class AlertSettings:
    """Policy knobs handed to the AlertEngine at construction."""
    critical_ratio: float = 0.2
    significant_change_ratio: float = 0.10
    refresh_after: timedelta = timedelta(hours=24)
    fallback_email: str = "inventory-alerts@example.com"


def load_alert_settings() -> AlertSettings:
    return AlertSettings(
        critical_ratio=CRITICAL_STOCK_RATIO,
        significant_change_ratio=SIGNIFICANT_CHANGE_RATIO,
        refresh_after=timedelta(hours=ALERT_REFRESH_HOURS),
        fallback_email=ALERT_FALLBACK_EMAIL,
    )
