"""Configuration loading and validation"""
import os
from pathlib import Path
from typing import Optional, Union
import pytz
from dotenv import load_dotenv

from .utils.logger import setup_logger
from .utils.scheduling import parse_clock
from .utils.timezone import DEFAULT_TIMEZONE

logger = setup_logger(__name__)

# Load environment variables from .env file
load_dotenv()

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class Config:
    """Application configuration"""

    def __init__(self):
        """Load and validate configuration"""
        # Exam API
        self.api_url = self._get_required("API_URL")
        self.exam_type_id: Union[int, str] = self._parse_id(os.getenv("EXAM_TYPE_ID", "1"))
        self.link_url = os.getenv("LINK_URL", "")

        # Discord webhook, notifications are skipped without it
        self.discord_webhook_url: Optional[str] = os.getenv("DISCORD_WEBHOOK_URL") or None
        self.discord_username: Optional[str] = os.getenv("DISCORD_USERNAME") or None

        # Storage and cache
        self.data_dir = Path(os.getenv("DATA_DIR", "data"))
        self.db_path = self.data_dir / "appointments.db"
        self.cache_dir = Path(os.getenv("CACHE_DIR", "cache"))
        self.cache_ttl = self._get_int("CACHE_TTL", 3600)
        self.retention_days = self._get_int("RETENTION_DAYS", 90)
        self.legacy_json_path = Path(os.getenv("DATA_FILE_PATH", "known-appointments.json"))

        # Network
        self.max_retries = self._get_int("MAX_RETRIES", 3)
        self.request_timeout = self._get_int("REQUEST_TIMEOUT", 30)

        # Schedule
        self.timezone = os.getenv("TIMEZONE", DEFAULT_TIMEZONE)
        self.check_time = os.getenv("CHECK_TIME", "08:00")
        self.maintenance_weekday = self._parse_weekday(os.getenv("MAINTENANCE_WEEKDAY", "6"))
        self.maintenance_time = os.getenv("MAINTENANCE_TIME", "03:00")

        self._validate()
        logger.info("Configuration loaded successfully")

    def _get_required(self, key: str) -> str:
        """Get required environment variable"""
        value = os.getenv(key)
        if not value:
            raise ValueError(f"Required environment variable {key} is not set")
        return value

    def _get_int(self, key: str, default: int) -> int:
        """Get integer environment variable"""
        value = os.getenv(key)
        if value is None or not value.strip():
            return default
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"{key} must be an integer, got {value!r}")

    @staticmethod
    def _parse_id(value: str) -> Union[int, str]:
        value = value.strip()
        return int(value) if value.isdigit() else value

    @staticmethod
    def _parse_weekday(value: str) -> int:
        """Weekday as number (Monday=0) or English name"""
        value = value.strip().lower()
        if value in WEEKDAYS:
            return WEEKDAYS.index(value)
        try:
            weekday = int(value)
        except ValueError:
            raise ValueError(f"MAINTENANCE_WEEKDAY must be 0-6 or a weekday name, got {value!r}")
        if not 0 <= weekday <= 6:
            raise ValueError("MAINTENANCE_WEEKDAY must be between 0 (Monday) and 6 (Sunday)")
        return weekday

    def _validate(self):
        """Validate configuration values"""
        if self.cache_ttl < 0:
            raise ValueError("CACHE_TTL must be non-negative")

        if self.retention_days < 1:
            raise ValueError("RETENTION_DAYS must be at least 1 day")

        if self.max_retries < 0:
            raise ValueError("MAX_RETRIES must be non-negative")

        if self.request_timeout < 1:
            raise ValueError("REQUEST_TIMEOUT must be at least 1 second")

        if self.timezone not in pytz.all_timezones_set:
            raise ValueError(f"Unknown TIMEZONE {self.timezone!r}")

        parse_clock(self.check_time)
        parse_clock(self.maintenance_time)

        if not self.discord_webhook_url:
            logger.warning(
                "DISCORD_WEBHOOK_URL is not set, notifications will not be sent"
            )
        if not self.link_url:
            logger.warning("LINK_URL is not set, appointment links will only contain the id")

        logger.info(f"Exam type: {self.exam_type_id}")
        logger.info(
            f"Daily check at {self.check_time}, maintenance on "
            f"{WEEKDAYS[self.maintenance_weekday].capitalize()} at {self.maintenance_time} "
            f"({self.timezone})"
        )
        logger.info(f"Retention window: {self.retention_days} days")
