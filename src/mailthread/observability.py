"""structlog configuration, per-component loggers, and the Sentry bridge.

Provides:
- ``configure_logging(production, sentry_dsn)``: JSON rendering (production)
  or colored console (development), with optional Sentry forwarding.
- ``component_logger(name)``: a logger bound to a static component name.
- ``init_sentry(dsn)``: Initialize Sentry SDK.  No-op when *dsn* is empty.
- ``configure_from_settings(settings)``: ``configure_logging`` driven by
  the ``production`` and ``sentry_dsn`` settings.
"""

from __future__ import annotations

import logging
from typing import Any

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog_sentry import SentryProcessor

from mailthread.config import Settings

SERVICE_NAME = "mailthread"


def init_sentry(dsn: str) -> None:
    """Initialize Sentry SDK with the given *dsn*.

    When *dsn* is empty the function returns immediately, so it is safe to
    call unconditionally at startup.

    Args:
        dsn: Sentry DSN string.  Empty string disables Sentry.
    """
    if not dsn:
        return

    sentry_sdk.init(
        dsn=dsn,
        traces_sample_rate=0.1,
        send_default_pii=False,
        integrations=[
            # structlog-sentry does the reporting; avoid double events.
            LoggingIntegration(event_level=None, level=None),
        ],
    )


def configure_logging(production: bool = False, sentry_dsn: str = "") -> None:
    """Configure structlog for production (JSON) or development (console).

    When *sentry_dsn* is set, Sentry is initialized and ERROR-level events
    are forwarded to it.

    Args:
        production: Enable production mode if ``True``.
        sentry_dsn: Sentry DSN.  Empty string disables forwarding.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
    ]

    if sentry_dsn:
        init_sentry(sentry_dsn)
        processors.append(SentryProcessor(event_level=logging.ERROR))

    processors += [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if production:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)


def configure_from_settings(settings: Settings) -> None:
    """Configure logging (and Sentry) from application *settings*."""
    configure_logging(settings.production, settings.sentry_dsn.get_secret_value())


def component_logger(name: str, logger: Any = None) -> Any:
    """Return *logger* (or a fresh structlog logger) bound to a component name.

    Components take their logger as a constructor argument so tests can
    inject a capturing logger; this is the shared fallback.

    Args:
        name: Static component name, e.g. ``"ThreadAssembler"``.
        logger: An existing structlog logger to bind, or ``None``.

    Returns:
        A structlog bound logger carrying ``component=name``.
    """
    base = logger if logger is not None else structlog.get_logger()
    return base.bind(component=name)
