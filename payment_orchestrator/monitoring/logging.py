"""
Structured logging configuration.

structlog renders JSON events carrying the request id bound by the API
middleware; stdlib loggers (uvicorn, sqlalchemy, httpx) go through
python-json-logger so every line on stdout is JSON. Card data and gateway
credentials are scrubbed from events before rendering.
"""
import logging
import sys
from typing import Any, Callable, Dict, List, Optional

import structlog
from pythonjsonlogger import jsonlogger

from payment_orchestrator.config import Settings, get_settings

EventDict = Dict[str, Any]
Processor = Callable[[Any, str, EventDict], EventDict]

SENSITIVE_KEYS = frozenset(
    {"card_number", "cardNumber", "cvv", "card_code", "cardCode", "transaction_key", "transactionKey"}
)
REDACTED = "[REDACTED]"


def app_context_processor(settings: Settings) -> Processor:
    """Build a processor stamping events with the service name, env and gateway environment."""
    context = {
        "app_name": settings.app_name,
        "app_env": settings.app_env,
        "gateway_environment": settings.authorize_net_environment,
    }

    def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_app_context


def redact_sensitive_fields(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace card numbers, CVVs and transaction keys with a placeholder."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def _shared_processors(settings: Settings) -> List[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        app_context_processor(settings),
        redact_sensitive_fields,
    ]


def _configure_stdlib(level: str, sql_echo: bool) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "@timestamp", "levelname": "level", "name": "logger"},
        )
    )
    root_logger.addHandler(handler)

    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if sql_echo else logging.WARNING)


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure structlog and the stdlib root logger for JSON output.

    Args:
        settings: Settings read once for level and app context
            (defaults to the cached environment settings)
    """
    settings = settings or get_settings()

    structlog.configure(
        processors=_shared_processors(settings) + [structlog.processors.JSONRenderer()],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configure_stdlib(settings.log_level, settings.database_echo)

    structlog.get_logger(__name__).info(
        "logging_configured",
        log_level=settings.log_level,
        app_env=settings.app_env,
        gateway_environment=settings.authorize_net_environment,
    )


def get_logger(name: str, **initial_values: Any) -> Any:
    """
    Get a structured logger, optionally pre-bound with context.

    Args:
        name: Logger name
        **initial_values: Fields bound to every event of this logger

    Returns:
        Any: Structured logger
    """
    return structlog.get_logger(name, **initial_values)
