"""Logging configuration shared by the entry points."""
import logging
import sys

from config.settings import settings

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
DATE_FORMAT = "%H:%M:%S"


def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
    )
    # urllib3 logs every poll of the task endpoint at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
