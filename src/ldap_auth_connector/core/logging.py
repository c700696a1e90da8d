# # Copyright (c) 2024 LDAP Auth Connector
# # SPDX-License-Identifier: MIT
# #
# # LDAP Auth Connector
# # Directory bind and person lookup for upstream authentication layers

"""Package logger setup and the bind/search audit trail."""

import logging
import sys

from ..config.models import LoggingConfig

ROOT_LOGGER = "ldap_auth_connector"
AUDIT_LOGGER = f"{ROOT_LOGGER}.audit"


def _configure_handler(
    handler: logging.Handler, level: int, formatter: logging.Formatter
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: LoggingConfig) -> None:
    """
    Route package log records to stderr and, if configured, a log file.

    Handlers live on the package logger only, so module loggers created
    with ``__name__`` inherit them. Calling this again replaces the handlers
    of the previous call. An unwritable log file is reported and skipped.

    Args:
        config: Logging configuration
    """
    level = getattr(logging, config.level)
    formatter = logging.Formatter(config.format)

    package_logger = logging.getLogger(ROOT_LOGGER)
    package_logger.setLevel(level)
    package_logger.handlers.clear()
    package_logger.addHandler(
        _configure_handler(logging.StreamHandler(sys.stderr), level, formatter)
    )

    if config.file:
        try:
            file_handler = logging.FileHandler(config.file, encoding="utf-8")
        except OSError as e:
            package_logger.warning(f"Failed to setup file logging: {e}")
        else:
            package_logger.addHandler(_configure_handler(file_handler, level, formatter))
            package_logger.info(f"Logging to file: {config.file}")

    package_logger.info(f"Logging initialized at level: {config.level}")


def get_logger(name: str) -> logging.Logger:
    """Logger under the package hierarchy; ``__name__`` values are used unchanged."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def log_ldap_operation(operation: str, dn: str, success: bool, details: str | None = None) -> None:
    """
    Write one audit line for a directory bind or search.

    Binds record the identity DN and searches the base DN; passwords are
    never passed in. Failures go out at WARNING, successes at INFO.

    Args:
        operation: 'bind' or 'search'
        dn: Bind identity or search base
        success: Whether the directory accepted the operation
        details: Short reason, e.g. 'credentials rejected'
    """
    status = "SUCCESS" if success else "FAILURE"
    parts = [f"LDAP {operation.upper()}: {status}", f"DN: {dn}"]
    if details:
        parts.append(f"Details: {details}")

    logging.getLogger(AUDIT_LOGGER).log(
        logging.INFO if success else logging.WARNING, " - ".join(parts)
    )
