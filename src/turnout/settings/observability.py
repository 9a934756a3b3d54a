"""Logging settings for Turnout.

Configures structlog for structured JSON logs. Django, Celery and other stdlib loggers are routed
through the same processor chain via ``ProcessorFormatter``.
"""

import re
import typing as t

import structlog
from decouple import config

from .base import DEBUG, VERSION

SERVICE_NAME = config("SERVICE_NAME", default="turnout")
SERVICE_VERSION = VERSION
DEPLOYMENT_ENVIRONMENT = config("DEPLOYMENT_ENVIRONMENT", default="development" if DEBUG else "production")
LOG_LEVEL = config("LOG_LEVEL", default="INFO")

SENSITIVE_KEYS = (
    "password",
    "secret",
    "api_key",
    "token",
    "authorization",
    "cookie",
    "check_in_code",
)
EMAIL_RE = re.compile(r"\b[\w\.-]+@[\w\.-]+\.\w+\b")


def scrub_pii(logger: t.Any, method_name: str, event_dict: dict[str, t.Any]) -> dict[str, t.Any]:
    """Redact credentials and email addresses from log events."""

    def _scrub(d: dict[str, t.Any]) -> dict[str, t.Any]:
        for key in list(d.keys()):
            if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
                d[key] = "[REDACTED]"
            elif isinstance(d[key], dict):
                d[key] = _scrub(d[key])
            elif isinstance(d[key], str) and "email" not in key.lower():
                d[key] = EMAIL_RE.sub("[EMAIL]", d[key])
        return d

    return _scrub(event_dict)


def add_app_context(logger: t.Any, method_name: str, event_dict: dict[str, t.Any]) -> dict[str, t.Any]:
    """Add service/version/environment to all log events."""
    event_dict["service"] = SERVICE_NAME
    event_dict["version"] = SERVICE_VERSION
    event_dict["environment"] = DEPLOYMENT_ENVIRONMENT
    return event_dict


STRUCTLOG_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
    add_app_context,
    scrub_pii,
    structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
]

# Processors for foreign loggers (Django, Celery, etc.)
FOREIGN_PRE_CHAIN = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    add_app_context,
    scrub_pii,
]

structlog.configure(
    processors=STRUCTLOG_PROCESSORS,  # type: ignore[arg-type]
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": structlog.stdlib.ProcessorFormatter,
            "processor": structlog.processors.JSONRenderer(),
            "foreign_pre_chain": FOREIGN_PRE_CHAIN,
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "django.db.backends": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "celery": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "stripe": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "urllib3": {"handlers": ["console"], "level": "WARNING", "propagate": False},
    },
}
