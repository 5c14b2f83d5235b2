import logging
from typing import Optional
from datetime import datetime, timezone, timedelta

from core.config import settings

class SiteTimeFormatter(logging.Formatter):
    """Render log times in the monitoring site's local offset."""

    def __init__(self, fmt: str, utc_offset_hours: int = 0) -> None:
        super().__init__(fmt=fmt)
        self.tz = timezone(timedelta(hours=utc_offset_hours))
        self.tz_label = f"UTC{utc_offset_hours:+d}"

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc).astimezone(self.tz)
        return f"{dt.strftime('%Y-%m-%d %H:%M:%S')} {self.tz_label}"

    def format(self, record: logging.LogRecord) -> str:
        # Only keep the module part of the logger name
        record.name = record.name.split('.')[-1]
        return super().format(record)

def setup_logging(level: int = logging.INFO) -> None:
    formatter = SiteTimeFormatter(
        fmt="[%(levelname)s] %(asctime)s | %(name)s | %(message)s",
        utc_offset_hours=settings.site.get("utc_offset_hours", 0)
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
