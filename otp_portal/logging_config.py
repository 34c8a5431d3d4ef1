# otp_portal/logging_config.py
import os
import logging
import pytz
from datetime import datetime

DEFAULT_TIMEZONE = 'Asia/Kolkata'


class LocalTimeFormatter(logging.Formatter):
    def __init__(self, fmt=None, datefmt=None, tz_name=DEFAULT_TIMEZONE):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.timezone = pytz.timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        # Render the record time in the portal's local timezone
        record_time = datetime.fromtimestamp(record.created, self.timezone)
        return record_time.strftime(datefmt) if datefmt else record_time.isoformat()


def setup_logging(name=None, tz_name=None):
    """Install the root handler once and return a logger for ``name``."""
    root = logging.getLogger()
    if not root.handlers:
        formatter = LocalTimeFormatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
            tz_name=tz_name or os.environ.get('LOG_TIMEZONE', DEFAULT_TIMEZONE)
        )

        handler = logging.StreamHandler()
        handler.setFormatter(formatter)

        root.setLevel(logging.INFO)
        root.addHandler(handler)

    return logging.getLogger(name)
