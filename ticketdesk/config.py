"""
TicketDesk Configuration

Settings come from the environment (optionally a local .env file).

- TICKETDESK_REPORT_TZ: timezone for date filters and report timestamps
- TICKETDESK_REPORT_WINDOW_DAYS: default export window
- TICKETDESK_MAX_ATTACHMENTS: attachment cap on Hardware/Software tickets
- TICKETDESK_LOG_LEVEL: root log level
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from pydantic import BaseModel, Field


ENV_PATH = Path(".env")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseModel):
    report_tz: str = "Africa/Johannesburg"
    report_window_days: int = Field(30, ge=0)
    max_attachments: int = Field(5, ge=0)
    log_level: str = "INFO"

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.report_tz)

    @classmethod
    def from_env(cls) -> "Settings":
        # unset variables fall back to the model defaults
        values = {}
        for field, var in (
            ("report_tz", "TICKETDESK_REPORT_TZ"),
            ("report_window_days", "TICKETDESK_REPORT_WINDOW_DAYS"),
            ("max_attachments", "TICKETDESK_MAX_ATTACHMENTS"),
            ("log_level", "TICKETDESK_LOG_LEVEL"),
        ):
            raw = os.environ.get(var)
            if raw:
                values[field] = raw
        return cls(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv(dotenv_path=ENV_PATH)
    return Settings.from_env()


def configure_logging(settings: Settings = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
