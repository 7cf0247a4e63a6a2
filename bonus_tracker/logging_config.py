import logging
import sys
from datetime import datetime
from zoneinfo import ZoneInfo

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Chatty at INFO: one line per job run / per connection
NOISY_LOGGERS = ("apscheduler.executors.default", "apscheduler.scheduler", "urllib3")


class LocalTimeFormatter(logging.Formatter):
    """Timestamps in the team's timezone (the report's "today"), not the host's."""

    def __init__(self, tz_name: str):
        super().__init__(LOG_FORMAT, "%Y-%m-%d %H:%M:%S")
        self.tz = ZoneInfo(tz_name)

    def converter(self, timestamp):
        return datetime.fromtimestamp(timestamp, tz=self.tz).timetuple()


def setup_logging(tz_name: str = "Europe/Madrid", level: int = logging.INFO) -> logging.Logger:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(LocalTimeFormatter(tz_name))

    logging.basicConfig(level=level, handlers=[handler], force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return logging.getLogger()
