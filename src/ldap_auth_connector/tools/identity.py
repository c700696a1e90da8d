# # Copyright (c) 2024 LDAP Auth Connector
# # SPDX-License-Identifier: MIT
# #
# # LDAP Auth Connector
# # Directory bind and person lookup for upstream authentication layers

"""Identity lookup and credential verification tool."""

from typing import Any

from ..core.authenticator import DirectoryAuthenticator
from ..core.exceptions import DirectoryConnectionError
from ..core.logging import get_logger

logger = get_logger(__name__)


class IdentityTool:
    """Tool exposing directory identity operations as plain dictionaries."""

    def __init__(self, authenticator: DirectoryAuthenticator):
        """Initialize the identity tool.

        Args:
            authenticator: Directory authenticator instance
        """
        self.authenticator = authenticator
        self.connector = authenticator.connector

    def lookup_person(self, identifier: str) -> dict[str, Any] | None:
        """
        Look up a person by username or email address.

        Args:
            identifier: Username or any aliased email address

        Returns:
            Identity dictionary, or None if no record matched
        """
        logger.info(f"Looking up person: '{identifier}'")

        identity = self.authenticator.lookup(identifier)
        return identity.model_dump() if identity else None

    def verify_credentials(self, username: str, password: str) -> dict[str, Any]:
        """
        Verify a username/password pair.

        Args:
            username: Login name
            password: Password

        Returns:
            Dictionary with the outcome and, on success, the identity
        """
        logger.info(f"Verifying credentials for: '{username}'")

        identity = self.authenticator.authenticate(username, password)
        return {
            "authenticated": identity is not None,
            "identity": identity.model_dump() if identity else None,
        }

    def check_connection(self) -> dict[str, Any]:
        """
        Bind with the administrative identity and report the outcome.

        Returns:
            Dictionary with connection test results
        """
        ldap_config = self.connector.ldap_config
        status: dict[str, Any] = {
            "host": ldap_config.host,
            "base_dn": ldap_config.base_dn,
            "version": ldap_config.version,
        }

        try:
            bound = self.connector.connect()
        except DirectoryConnectionError as e:
            logger.error(f"Connection test failed: {e}")
            return {**status, "connected": False, "error": str(e)}
        finally:
            self.connector.disconnect()

        status["connected"] = True
        status["bound"] = bound
        if not bound:
            status["error"] = "Administrative bind rejected"
        return status
