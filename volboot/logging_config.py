import logging
import sys
from typing import Optional

import structlog

from volboot.config import Settings


def configure_logging(app_settings: Optional[Settings] = None) -> None:
    # Unvalidated defaults until the real settings are loaded
    app_settings = app_settings or Settings.model_construct()
    log_level = getattr(logging, app_settings.log_level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    # stdout ends up in /var/log/cloud-init-output.log
    if app_settings.environment == "dev":
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    # botocore is chatty at INFO when waiters poll
    logging.getLogger("botocore").setLevel(max(log_level, logging.WARNING))


def get_logger(name: str = "volboot") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
