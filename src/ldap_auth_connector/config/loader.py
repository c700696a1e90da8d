# # Copyright (c) 2024 LDAP Auth Connector
# # SPDX-License-Identifier: MIT
# #
# # LDAP Auth Connector
# # Directory bind and person lookup for upstream authentication layers

"""Configuration loader for LDAP Auth Connector."""

import json
import logging
import os
from pathlib import Path

from .environment import load_config_from_env
from .models import AttributeConfig, Config

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "LDAP_AUTH_CONFIG"


def load_config(config_path: str | None = None) -> Config:
    """
    Load configuration from a JSON file or from the environment.

    Args:
        config_path: Path to configuration file. If None, uses the
                    LDAP_AUTH_CONFIG environment variable; if that is unset
                    too, the LDAP_* environment variables are read.

    Returns:
        Config: Loaded and validated configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
        json.JSONDecodeError: If config file is not valid JSON
    """
    if config_path is None:
        config_path = os.getenv(CONFIG_PATH_ENV)

    if not config_path:
        logger.info("No configuration file specified; reading LDAP_* environment variables")
        try:
            config = load_config_from_env()
        except ValueError as e:
            logger.error(f"Invalid environment configuration: {e}")
            raise
        _log_config_summary(config)
        return config

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from: {config_path}")

    try:
        with open(config_file, encoding="utf-8") as f:
            config_data = json.load(f)

        config = Config(**config_data)
        logger.info("Configuration loaded successfully")

        # Log configuration summary (without sensitive data)
        _log_config_summary(config)

        return config

    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in configuration file: {e}")
        raise
    except ValueError as e:
        logger.error(f"Error loading configuration: {e}")
        raise


def _log_config_summary(config: Config) -> None:
    """
    Log configuration summary without sensitive information.

    Args:
        config: Configuration object to summarize
    """
    logger.debug(f"LDAP Host: {config.ldap.host}")
    logger.debug(f"Base DN: {config.ldap.base_dn}")
    logger.debug(f"Admin DN: {config.ldap.admin_dn or '(none)'}")
    logger.debug(f"Protocol Version: {config.ldap.version}")
    logger.debug(f"User ID Attribute: {config.attributes.user_id}")
    logger.debug(f"Username Attribute: {config.attributes.username}")
    logger.debug(f"Allow No Password: {config.auth.allow_no_pass}")

    if config.auth.auth_query:
        logger.debug(f"Auth Query: {config.auth.auth_query}")

    logger.debug(f"Logging Level: {config.logging.level}")


def validate_config(config: Config) -> None:
    """
    Check the configuration for risky or obsolete settings and log warnings.

    Args:
        config: Configuration to validate
    """
    admin_password = config.ldap.admin_password.get_secret_value()

    if config.auth.allow_no_pass:
        logger.warning(
            "allow_no_pass is enabled: logins without a password are resolved "
            "through the administrative DN without verifying the user"
        )
        if not config.ldap.admin_dn and not admin_password:
            logger.warning(
                "No admin DN configured; password-less logins will bind anonymously"
            )

    if config.ldap.admin_dn and not admin_password:
        logger.warning("Admin DN configured without a password; administrative binds will fail")

    if config.ldap.version == 2:
        logger.warning("LDAP protocol version 2 is obsolete; version 3 is recommended")

    if config.auth.auth_query:
        attrs = config.attributes
        if attrs.username not in config.auth.auth_query and attrs.mail_array not in config.auth.auth_query:
            logger.warning(
                f"Auth query {config.auth.auth_query} references neither "
                f"{attrs.username} nor {attrs.mail_array}"
            )

    logger.info("Configuration validation completed")


def create_sample_config(output_path: str) -> None:
    """
    Create a sample configuration file.

    Args:
        output_path: Path where to create the sample config
    """
    attributes = AttributeConfig()
    sample_config = {
        "ldap": {
            "host": "ldap://ldap.example.com",
            "base_dn": "ou=People,dc=example,dc=com",
            "admin_dn": "cn=admin,dc=example,dc=com",
            "admin_password": "changeme",
            "version": 3,
            "timeout": 30,
        },
        "attributes": attributes.model_dump(),
        "auth": {
            "allow_no_pass": False,
            "auth_query": attributes.default_auth_query(),
            "user_id_prefix": "",
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    }

    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(sample_config, f, indent=2, ensure_ascii=False)

    logger.info(f"Sample configuration created at: {output_path}")
