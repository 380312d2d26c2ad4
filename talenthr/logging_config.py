import logging
import sys

import structlog

from talenthr.config import settings

# Event keys that must never reach the log stream verbatim.
REDACTED_KEYS = frozenset(
    {"password", "password_hash", "token", "access_token", "refresh_token", "otp", "otp_code"}
)


def redact_secrets(logger, method_name, event_dict):
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def add_service_context(logger, method_name, event_dict):
    event_dict.setdefault("service", settings.APP_NAME.lower())
    event_dict.setdefault("env", settings.ENVIRONMENT)
    return event_dict


def setup_logging():
    """
    Configure structlog for the API.

    Request-scoped keys (``request_id`` from the correlation middleware,
    ``user_id``/``company_id`` from the auth dependency) arrive through
    contextvars. Standard-library loggers (uvicorn, tenacity retries) write
    plain lines to stdout at the same level.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.is_development
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_service_context,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_secrets,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
