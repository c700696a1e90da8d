# # Copyright (c) 2024 LDAP Auth Connector
# # SPDX-License-Identifier: MIT
# #
# # LDAP Auth Connector
# # Directory bind and person lookup for upstream authentication layers

"""Tests for logging functionality."""

import logging
from pathlib import Path
from tempfile import NamedTemporaryFile
from unittest.mock import patch

from ldap_auth_connector.config.models import LoggingConfig
from ldap_auth_connector.core.logging import get_logger, log_ldap_operation, setup_logging


class TestLoggingSetup:
    """Test logging setup functionality."""

    def test_setup_logging_console_only(self, caplog):
        """Test logging setup with console handler only."""
        config = LoggingConfig(level="INFO")

        with caplog.at_level(logging.INFO):
            setup_logging(config)

        assert "Logging initialized at level: INFO" in caplog.text

        logger = logging.getLogger("ldap_auth_connector")
        logger.info("Test message")
        assert "Test message" in caplog.text

    def test_setup_logging_with_file(self):
        """Test logging setup with file handler."""
        with NamedTemporaryFile(mode="w", suffix=".log", delete=False) as f:
            log_file = f.name

        try:
            config = LoggingConfig(level="DEBUG", file=log_file)
            setup_logging(config)

            logger = get_logger("core.ldap_connector")
            logger.debug("Debug message")
            logger.info("Info message")

            with open(log_file) as f:
                content = f.read()
                assert "Debug message" in content
                assert "Info message" in content
                assert "Logging to file:" in content

        finally:
            logging.getLogger("ldap_auth_connector").handlers.clear()
            Path(log_file).unlink()

    def test_setup_logging_file_error(self, caplog):
        """Test logging setup with file error."""
        config = LoggingConfig(level="INFO", file="/invalid/path/test.log")

        with caplog.at_level(logging.WARNING):
            setup_logging(config)

        assert "Failed to setup file logging" in caplog.text

    def test_setup_logging_custom_format(self):
        """Test logging setup with custom format."""
        custom_format = "%(levelname)s: %(message)s"
        config = LoggingConfig(level="INFO", format=custom_format)

        with patch("ldap_auth_connector.core.logging.logging.Formatter") as mock_formatter:
            setup_logging(config)
            mock_formatter.assert_called_with(custom_format)

    def test_setup_logging_clears_existing_handlers(self):
        """Test that setup_logging clears existing handlers."""
        logger = logging.getLogger("ldap_auth_connector")

        dummy_handler = logging.StreamHandler()
        logger.addHandler(dummy_handler)

        setup_logging(LoggingConfig(level="INFO"))

        assert len(logger.handlers) > 0
        assert dummy_handler not in logger.handlers

    def test_repeated_setup_replaces_handlers(self):
        """Test calling setup_logging twice does not duplicate handlers."""
        setup_logging(LoggingConfig(level="INFO"))
        setup_logging(LoggingConfig(level="DEBUG"))

        logger = logging.getLogger("ldap_auth_connector")
        assert len(logger.handlers) == 1
        assert logger.handlers[0].level == logging.DEBUG

        setup_logging(LoggingConfig(level="INFO"))

    def test_level_applies_to_module_loggers(self, caplog):
        """Test module loggers inherit the configured level."""
        setup_logging(LoggingConfig(level="WARNING"))

        logger = logging.getLogger("ldap_auth_connector.core.transport")

        with caplog.at_level(logging.DEBUG):
            logger.info("Info message")
            logger.warning("Warning message")

        assert "Info message" not in caplog.text
        assert "Warning message" in caplog.text

        setup_logging(LoggingConfig(level="INFO"))


class TestGetLogger:
    """Test get_logger functionality."""

    def test_get_logger_basic(self):
        """Test basic logger retrieval."""
        logger = get_logger("test_module")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "ldap_auth_connector.test_module"

    def test_get_logger_module_name(self):
        """Test package module names are not prefixed twice."""
        logger = get_logger("ldap_auth_connector.tools.identity")

        assert logger.name == "ldap_auth_connector.tools.identity"

    def test_get_logger_same_name_returns_same_logger(self):
        """Test that same name returns same logger instance."""
        assert get_logger("same_module") is get_logger("same_module")


class TestLDAPOperationLogging:
    """Test LDAP operation audit logging."""

    def test_log_ldap_operation_success(self, caplog):
        """Test logging successful LDAP operation."""
        with caplog.at_level(logging.INFO, logger="ldap_auth_connector"):
            log_ldap_operation(
                operation="bind",
                dn="uid=jdoe,ou=People,dc=example,dc=com",
                success=True,
                details="administrative identity",
            )

        assert "LDAP BIND: SUCCESS" in caplog.text
        assert "uid=jdoe,ou=People,dc=example,dc=com" in caplog.text
        assert "administrative identity" in caplog.text

    def test_log_ldap_operation_failure(self, caplog):
        """Test logging failed LDAP operation."""
        with caplog.at_level(logging.WARNING):
            log_ldap_operation(
                operation="bind",
                dn="cn=admin,dc=example,dc=com",
                success=False,
                details="credentials rejected",
            )

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.name == "ldap_auth_connector.audit"
        assert "LDAP BIND: FAILURE" in record.getMessage()

    def test_log_ldap_operation_without_details(self, caplog):
        """Test logging LDAP operation without details."""
        with caplog.at_level(logging.INFO, logger="ldap_auth_connector"):
            log_ldap_operation(operation="search", dn="ou=People,dc=example,dc=com", success=True)

        assert "LDAP SEARCH: SUCCESS" in caplog.text
        assert "Details:" not in caplog.text
