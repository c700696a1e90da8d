# # Copyright (c) 2024 LDAP Auth Connector
# # SPDX-License-Identifier: MIT
# #
# # LDAP Auth Connector
# # Directory bind and person lookup for upstream authentication layers

"""LDAP Auth Connector MCP server implementation using FastMCP."""

import argparse
from typing import Any

from fastmcp import FastMCP
from pydantic import BaseModel, Field

from .config.loader import load_config, validate_config
from .config.models import Config
from .core.authenticator import AuthenticatedIdentity, DirectoryAuthenticator
from .core.ldap_connector import DirectoryConnector
from .core.logging import get_logger, setup_logging
from .tools.identity import IdentityTool

logger = get_logger(__name__)

mcp = FastMCP("LDAP Auth Connector")

_config: Config | None = None


def get_config() -> Config:
    """Load the configuration once and set up logging from it."""
    global _config

    if _config is None:
        _config = load_config()
        setup_logging(_config.logging)
        validate_config(_config)

    return _config


def get_identity_tool() -> IdentityTool:
    """
    Create an identity tool backed by a fresh connector.

    Connectors hold a single session and are not shared between requests.
    """
    connector = DirectoryConnector.from_config(get_config())
    return IdentityTool(DirectoryAuthenticator(connector))


class CredentialCheck(BaseModel):
    """Credential verification result model."""

    authenticated: bool = Field(description="Whether the credentials were accepted")
    identity: AuthenticatedIdentity | None = Field(None, description="Resolved identity")


@mcp.tool()
def lookup_person(
    identifier: str = Field(description="Username or email address (aliases included)"),
) -> AuthenticatedIdentity | None:
    """
    Look up a person in the directory without verifying a password.

    Matches the username attribute or any address in the mail-array attribute.
    """
    tool = get_identity_tool()

    try:
        person = tool.lookup_person(identifier)
        return AuthenticatedIdentity(**person) if person else None
    except Exception as e:
        logger.error(f"Person lookup failed: {e}")
        raise


@mcp.tool()
def verify_credentials(
    username: str = Field(description="Login name"),
    password: str = Field(description="Password"),
) -> CredentialCheck:
    """
    Verify a username/password pair by binding to the directory.
    """
    tool = get_identity_tool()

    try:
        return CredentialCheck(**tool.verify_credentials(username, password))
    except Exception as e:
        logger.error(f"Credential verification failed: {e}")
        raise


@mcp.tool()
def test_connection() -> dict[str, Any]:
    """
    Test the LDAP connection and administrative bind.
    """
    try:
        return get_identity_tool().check_connection()
    except Exception as e:
        logger.error(f"Connection test failed: {e}")
        return {"connected": False, "error": str(e)}


def main(argv: list[str] | None = None) -> None:
    """Run the MCP server over stdio, or over HTTP for development."""
    parser = argparse.ArgumentParser(description="LDAP Auth Connector MCP Server")
    parser.add_argument("--transport", choices=["stdio", "http"], default="stdio")
    parser.add_argument("--host", default="localhost", help="Host to bind to (http only)")
    parser.add_argument("--port", type=int, default=8814, help="Port to bind to (http only)")
    parser.add_argument("--path", default="/ldap-auth", help="URL path prefix (http only)")

    args = parser.parse_args(argv)

    try:
        get_config()
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

    if args.transport == "http":
        logger.info(f"Starting HTTP server on {args.host}:{args.port}{args.path}")
        mcp.run(transport="http", host=args.host, port=args.port, path=args.path)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
