"""Logging configuration driven by the merged log_level/log_format fields."""

import json
import logging
from typing import Optional

TEXT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class JsonLogFormatter(logging.Formatter):
    """Formatter that renders each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry)


def configure_logging(config, logger: Optional[logging.Logger] = None) -> logging.Logger:
    """
    Apply a configuration's level and format to a logger.

    Args:
        config: MailwayConfig providing get_log_level()/get_log_format()
        logger: Logger to configure (defaults to the root logger)

    Returns:
        The configured logger

    Raises:
        UnrecognizedValueError: If log_level or log_format holds an unknown token
    """
    # Resolve both before touching handlers so a bad token leaves logging as-is
    level = config.get_log_level()
    formatter = config.get_log_format()

    if logger is None:
        logger = logging.getLogger()
    logger.setLevel(level)

    if not logger.handlers:
        logger.addHandler(logging.StreamHandler())

    for handler in logger.handlers:
        handler.setFormatter(formatter)

    return logger
