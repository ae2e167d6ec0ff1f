"""
Logging configuration for the contact relay.

structlog is wired through the stdlib logging module so that events from
uvicorn, httpx and the Google client libraries share one renderer:
- JSON lines in production, console output elsewhere
- trace_id and submission_id from the request context on every record
- secret-bearing keys masked before rendering
"""

import logging
import os

import structlog

REDACTED = "[redacted]"

# Event keys whose values must never reach a log sink
SECRET_KEYS = frozenset({
    "password",
    "email_pass",
    "private_key",
    "credentials",
    "service_account_json",
    "authorization",
})


def redact_secrets(logger, method_name, event_dict):
    """Mask SMTP passwords and service account material in event values"""
    for key in list(event_dict):
        if key.lower() in SECRET_KEYS and event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def configure_structlog() -> None:
    """
    Configure structlog with the stdlib integration so
    logger.info("event", key=val) works everywhere.
    """
    env = os.getenv("ENVIRONMENT", "development")

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if env == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]


def get_log_level() -> str:
    """
    Get log level from environment with per-environment defaults.

    Returns:
        Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    env = os.getenv("ENVIRONMENT", "development")
    log_level = os.getenv("LOG_LEVEL", "").upper()

    if log_level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        return log_level

    defaults = {
        "production": "INFO",
        "staging": "INFO",
        "development": "DEBUG",
        "test": "WARNING",
    }

    return defaults.get(env, "INFO")


def configure_logging() -> None:
    """
    Initialize logging for the application.

    Called once at application startup and by the diagnostics script.
    """
    configure_structlog()

    logging.getLogger().setLevel(get_log_level())

    # Third-party chatter
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("aiosmtplib").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
