import logging
import uuid
from contextvars import ContextVar, Token
from typing import Callable, Optional

from pythonjsonlogger.json import JsonFormatter

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

REQUIRED_LOG_FIELDS = ("asctime", "levelname", "name", "message", "correlation_id", "service")
FIELD_RENAME_MAP = {"levelname": "level", "name": "logger"}

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str] = None) -> Token:
    """Bind a correlation id to the current task/thread; generates one when absent."""
    return _correlation_id.set(correlation_id or str(uuid.uuid4()))


def reset_correlation_id(token: Token):
    _correlation_id.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Injects correlation_id and service into every record."""

    def __init__(self, service_name: str, correlation_id_getter: Optional[Callable[[], str]] = None):
        super().__init__()
        self._service_name = service_name
        self._get_correlation_id = correlation_id_getter or get_correlation_id

    def filter(self, record: logging.LogRecord) -> bool:
        existing = getattr(record, "correlation_id", None)
        record.correlation_id = existing if existing else self._get_correlation_id()
        record.service = self._service_name
        return True


def create_json_formatter() -> JsonFormatter:
    format_string = " ".join(f"%({field})s" for field in REQUIRED_LOG_FIELDS)
    return JsonFormatter(format_string, rename_fields=FIELD_RENAME_MAP)


def configure_logging(level: str = "INFO", service_name: str = "saas-orchestrator"):
    level_upper = level.upper()
    if level_upper not in VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level}. Valid: {', '.join(sorted(VALID_LOG_LEVELS))}")

    handler = logging.StreamHandler()
    handler.setLevel(level_upper)
    handler.setFormatter(create_json_formatter())
    handler.addFilter(CorrelationIdFilter(service_name))

    root = logging.getLogger()
    root.setLevel(level_upper)
    # replace, never stack, handlers when called twice (api + worker in one process)
    root.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
