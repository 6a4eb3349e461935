"""Structured JSON logging configuration."""

import logging
import sys
from typing import Iterable
from pythonjsonlogger import jsonlogger

# uvicorn's own loggers, routed through the same JSON handler
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _json_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(message)s',
        timestamp=True
    ))
    return handler


def setup_logger(
    name: str = "komodo_exporter",
    level: str = "INFO",
    server_loggers: Iterable[str] = ()
) -> logging.Logger:
    """
    Configure structured JSON logging.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        server_loggers: Other logger names to emit through a JSON handler
            at the same level (pass SERVER_LOGGERS when running uvicorn)

    Returns:
        logging.Logger: Configured logger instance
    """
    numeric_level = getattr(logging, level.upper())

    for logger_name in (name, *server_loggers):
        target = logging.getLogger(logger_name)
        target.setLevel(numeric_level)
        # Replace handlers rather than stacking duplicates on reconfigure
        target.handlers = [_json_handler()]
        target.propagate = False

    return logging.getLogger(name)
