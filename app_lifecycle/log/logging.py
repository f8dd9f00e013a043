"""
Loguru configuration shared by the whole service.

Modules import ``logger`` from here and pass structured context as keyword
arguments, e.g. ``logger.info("Application approved", event_type="application_approved")``.
The keywords end up in ``record["extra"]`` and are serialized with JSON logs.
"""
import logging
import socket
import sys
from logging.handlers import SysLogHandler

from loguru import logger

from app_lifecycle.core.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level> | {extra}"
)


def _add_service_context(record) -> None:
    record["extra"].setdefault("service", settings.service_name)
    record["extra"].setdefault("environment", settings.environment)


def configure_logging(config: dict | None = None) -> None:
    """
    (Re)configure loguru sinks.

    Args:
        config: Logging options, defaults to ``settings.logging_config``.
    """
    config = config or settings.logging_config

    logger.remove()
    logger.configure(patcher=_add_service_context)

    if config.get("json_logs"):
        logger.add(sys.stderr, level=config["log_level"], serialize=True, backtrace=False)
    else:
        logger.add(sys.stderr, level=config["log_level"], format=CONSOLE_FORMAT, colorize=True)

    if config.get("enable_logstash") and config.get("syslog_host"):
        try:
            handler = SysLogHandler(
                address=(config["syslog_host"], config["syslog_port"]),
                socktype=socket.SOCK_DGRAM,
            )
            handler.setFormatter(logging.Formatter(f"{config['app_name']}: %(message)s"))
            logger.add(handler, level=config["log_level"], serialize=True)
        except OSError as e:
            logger.warning(
                "Syslog sink unavailable",
                event_type="logging_syslog_unavailable",
                error=str(e),
            )


configure_logging()

__all__ = ["logger", "configure_logging"]
