"""
Structured logging setup.

Log records carry their context in ``extra=`` dicts; the JSON formatter
flattens those into the emitted line, next to the request's
``correlation_id``.
"""

import logging
import sys
from pythonjsonlogger import jsonlogger
from backend.app.core.config import Settings
from backend.app.core.observability import CorrelationIdFilter


def configure_logging(settings: Settings) -> None:
    """Route everything through one JSON stdout handler. Safe to call twice."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(correlation_id)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger"},
    ))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in ("uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).setLevel(level)
