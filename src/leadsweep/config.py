"""LeadSweep service configuration.

Settings are read from the process environment once per ``Config()``; a
``.env`` file in the working directory is loaded first and never overrides
variables that are already set. Nothing here talks to the network: each
``validate_for_*`` method checks only the settings one job family needs,
so the CLI can run ``stats`` without a SendGrid key.

Usage:
    >>> from leadsweep.config import Config
    >>> config = Config()
    >>> config.validate_for_zones()
    >>> config.get_bounds()
    Bounds(north=30.45, south=30.15, east=-97.65, west=-97.75)
"""

import os

from dotenv import load_dotenv

from .errors import ConfigurationError
from .scheduling.zone_partitioner import Bounds

load_dotenv()

TRUE_VALUES = ("true", "1")


class Config:
    """Environment-backed settings for scraping, outreach and scheduling.

    Attributes:
        DATABASE_URL: PostgreSQL or SQLite connection string.
        GOOGLE_MAPS_API_KEY: Places API key used by the extractor.
        SENDGRID_API_KEY, SENDGRID_FROM_EMAIL: Mailer credentials and sender.
        GRID_SIZE, BOUNDS_*: Zone grid over the search area (Austin by default).
        MAX_DAILY_EMAILS: Daily quota of outreach attempts.
        FOLLOWUP1_AFTER_DAYS, FOLLOWUP2_AFTER_DAYS: Follow-up cadence.
    """

    def __init__(self) -> None:
        self.APP_ENV = self._str("APP_ENV", "dev")

        # Database
        self.DATABASE_URL = self._str("DATABASE_URL")
        self.DATABASE_POOL_SIZE = self._int("DATABASE_POOL_SIZE", 5)
        self.DATABASE_MAX_OVERFLOW = self._int("DATABASE_MAX_OVERFLOW", 10)
        self.DATABASE_ECHO = self._bool("DATABASE_ECHO")

        # Zone grid
        self.ZONE_BASED_SCRAPING = self._bool("ZONE_BASED_SCRAPING")
        self.GRID_SIZE = self._int("GRID_SIZE", 10)
        self.BOUNDS_NORTH = self._float("BOUNDS_NORTH", 30.45)
        self.BOUNDS_SOUTH = self._float("BOUNDS_SOUTH", 30.15)
        self.BOUNDS_EAST = self._float("BOUNDS_EAST", -97.65)
        self.BOUNDS_WEST = self._float("BOUNDS_WEST", -97.75)
        self.ZONE_PAUSE_SECONDS = self._float("ZONE_PAUSE_SECONDS", 5.0)

        # Discovery
        self.GOOGLE_MAPS_API_KEY = self._str("GOOGLE_MAPS_API_KEY")
        self.SEARCH_LOCATION = self._str("SEARCH_LOCATION", "Austin, Texas")
        self.SEARCH_KEYWORD = self._str("SEARCH_KEYWORD")
        self.SEARCH_RADIUS_KM = self._float("SEARCH_RADIUS_KM", 10.0)
        self.MAX_BUSINESSES_PER_RUN = self._int("MAX_BUSINESSES_PER_RUN", 100)

        # Outreach
        self.SENDGRID_API_KEY = self._str("SENDGRID_API_KEY")
        self.SENDGRID_FROM_EMAIL = self._str("SENDGRID_FROM_EMAIL")
        self.SENDGRID_FROM_NAME = self._str("SENDGRID_FROM_NAME", "Web Development Services")
        self.MAX_DAILY_EMAILS = self._int("MAX_DAILY_EMAILS", 50)
        self.FOLLOWUP1_AFTER_DAYS = self._int("FOLLOWUP1_AFTER_DAYS", 3)
        self.FOLLOWUP2_AFTER_DAYS = self._int("FOLLOWUP2_AFTER_DAYS", 7)
        self.EMAIL_SEND_DELAY_SECONDS = self._float("EMAIL_SEND_DELAY_SECONDS", 5.0)

        # Offer details rendered into messages
        self.SERVICE_PRICE = self._int("SERVICE_PRICE", 15000)
        self.SERVICE_CURRENCY = self._str("SERVICE_CURRENCY", "INR")
        self.BUSINESS_PHONE = self._str("BUSINESS_PHONE")
        self.UNSUBSCRIBE_EMAIL = self._str("UNSUBSCRIBE_EMAIL", self.SENDGRID_FROM_EMAIL)

        # Periodic tasks
        self.ENABLE_AUTO_SCRAPING = self._bool("ENABLE_AUTO_SCRAPING")
        self.ENABLE_AUTO_EMAILING = self._bool("ENABLE_AUTO_EMAILING")
        self.SCRAPING_CRON = self._str("SCRAPING_CRON", "0 2 * * *")
        self.EMAIL_CRON = self._str("EMAIL_CRON", "0 10 * * *")
        self.HEALTH_CHECK_CRON = self._str("HEALTH_CHECK_CRON", "0 * * * *")
        self.SCHEDULER_TIMEZONE = self._str("SCHEDULER_TIMEZONE", "UTC")

    @staticmethod
    def _str(name: str, default: str = "") -> str:
        return os.environ.get(name, default)

    @staticmethod
    def _bool(name: str) -> bool:
        return os.environ.get(name, "").lower() in TRUE_VALUES

    @staticmethod
    def _number(name: str, default, cast, kind: str):
        raw = os.environ.get(name, "").strip()
        if not raw:
            return default
        try:
            return cast(raw)
        except ValueError as e:
            raise ConfigurationError(f"{name} must be {kind}, got {raw!r}") from e

    def _int(self, name: str, default: int) -> int:
        return self._number(name, default, int, "an integer")

    def _float(self, name: str, default: float) -> float:
        return self._number(name, default, float, "a number")

    def get_bounds(self) -> Bounds:
        """Get the configured search area as a bounding box."""
        return Bounds(
            north=self.BOUNDS_NORTH,
            south=self.BOUNDS_SOUTH,
            east=self.BOUNDS_EAST,
            west=self.BOUNDS_WEST,
        )

    def database_options(self) -> dict:
        """Keyword arguments for ``Database`` besides the URL."""
        return {
            "pool_size": self.DATABASE_POOL_SIZE,
            "max_overflow": self.DATABASE_MAX_OVERFLOW,
            "echo": self.DATABASE_ECHO,
        }

    def validate_for_zones(self) -> None:
        """Raise ConfigurationError if the grid size or bounds are unusable."""
        if self.GRID_SIZE <= 0:
            raise ConfigurationError(f"GRID_SIZE must be positive, got {self.GRID_SIZE}")
        self.get_bounds().validate()

    def validate_for_scraping(self) -> None:
        """Raise ConfigurationError if the extractor cannot be built."""
        if not self.GOOGLE_MAPS_API_KEY:
            raise ConfigurationError("GOOGLE_MAPS_API_KEY is required for lead scraping")

    def validate_for_email(self) -> None:
        """Validate the mailer credentials and the daily quota.

        Raises:
            ConfigurationError: If the SendGrid key or sender is missing, or
                MAX_DAILY_EMAILS is negative.
        """
        if not self.SENDGRID_API_KEY:
            raise ConfigurationError("SENDGRID_API_KEY is required for email delivery")
        if not self.SENDGRID_FROM_EMAIL:
            raise ConfigurationError("SENDGRID_FROM_EMAIL is required for email delivery")
        if self.MAX_DAILY_EMAILS < 0:
            raise ConfigurationError("MAX_DAILY_EMAILS cannot be negative")

    def validate_for_database(self) -> None:
        if not self.DATABASE_URL:
            raise ConfigurationError("DATABASE_URL is required for database operations")

    def summary(self) -> dict:
        """Non-secret settings, for startup logs."""
        return {
            "app_env": self.APP_ENV,
            "zone_based_scraping": self.ZONE_BASED_SCRAPING,
            "grid_size": self.GRID_SIZE,
            "search_location": self.SEARCH_LOCATION,
            "max_daily_emails": self.MAX_DAILY_EMAILS,
            "google_maps_configured": bool(self.GOOGLE_MAPS_API_KEY),
            "sendgrid_configured": bool(self.SENDGRID_API_KEY),
            "auto_scraping": self.ENABLE_AUTO_SCRAPING,
            "auto_emailing": self.ENABLE_AUTO_EMAILING,
        }
