"""Console logging for stable-balances."""

import logging
import os
import sys

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# web3 and its HTTP stack log every request at DEBUG
NOISY_LOGGERS = ("web3", "urllib3", "aiohttp")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that renders the level name in bold ANSI color."""

    LEVEL_COLORS = {
        "TRACE": 90,
        "DEBUG": 36,
        "INFO": 32,
        "WARNING": 33,
        "ERROR": 31,
        "CRITICAL": 35,
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        color = self.LEVEL_COLORS.get(levelname)
        if color is None:
            return super().format(record)

        record.levelname = f"\033[{color}m\033[1m{levelname}\033[0m"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(log_level: str | None = None) -> None:
    """Send logs to stdout at ``log_level`` (or ``LOG_LEVEL``, default INFO).

    At DEBUG the web3/HTTP loggers stay at WARNING; TRACE lets them through.
    """
    level_name = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = TRACE if level_name == "TRACE" else getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColoredFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)

    noisy_level = {"DEBUG": logging.WARNING, "TRACE": TRACE}.get(level_name)
    if noisy_level is not None:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(noisy_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
