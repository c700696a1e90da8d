# # Copyright (c) 2024 LDAP Auth Connector
# # SPDX-License-Identifier: MIT
# #
# # LDAP Auth Connector
# # Directory bind and person lookup for upstream authentication layers

"""Directory transport contract and its ldap3 implementation."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Protocol

from ldap3 import ALL_ATTRIBUTES, ANONYMOUS, NONE, SIMPLE, SUBTREE, SYNC, Connection, Server
from ldap3.core.exceptions import (
    LDAPCommunicationError,
    LDAPException,
    LDAPPasswordIsMandatoryError,
    LDAPUserNameIsMandatoryError,
)
from ldap3.core.results import (
    RESULT_INAPPROPRIATE_AUTHENTICATION,
    RESULT_INSUFFICIENT_ACCESS_RIGHTS,
    RESULT_INVALID_CREDENTIALS,
    RESULT_SUCCESS,
    RESULT_UNWILLING_TO_PERFORM,
)
from ldap3.utils.ciDict import CaseInsensitiveDict

from .exceptions import DirectoryConnectionError, DirectorySearchError, NotConnectedError

logger = logging.getLogger(__name__)

# Bind result codes meaning "these credentials were refused", as opposed to
# a broken server or protocol exchange.
CREDENTIAL_REJECTION_CODES = frozenset(
    {
        RESULT_INAPPROPRIATE_AUTHENTICATION,
        RESULT_INVALID_CREDENTIALS,
        RESULT_INSUFFICIENT_ACCESS_RIGHTS,
        RESULT_UNWILLING_TO_PERFORM,
    }
)


@dataclass(frozen=True)
class ConnectionParams:
    """Parameters handed to a transport when a session is opened."""

    host: str
    base_dn: str
    version: int = 3
    timeout: int = 30
    receive_timeout: int = 10


AttributeValue = str | bytes


@dataclass(frozen=True)
class DirectoryEntry:
    """
    A directory record: its DN and read-only, case-insensitive attributes.

    Each attribute maps to a tuple of values. Values are text, except binary
    values (``jpegPhoto``, ``objectGUID``) that are not valid UTF-8, which
    stay bytes.
    """

    dn: str
    attributes: Mapping[str, tuple[AttributeValue, ...]] = field(
        default_factory=lambda: MappingProxyType(CaseInsensitiveDict())
    )

    @classmethod
    def from_mapping(cls, dn: str, attributes: Mapping[str, Any]) -> "DirectoryEntry":
        """
        Build an entry from an attribute mapping.

        Single values and lists are both normalized to tuples.

        Args:
            dn: Distinguished name of the entry
            attributes: Attribute name to value(s) mapping

        Returns:
            DirectoryEntry with normalized attribute values
        """
        normalized = CaseInsensitiveDict()
        for name, value in attributes.items():
            normalized[name] = _as_values(value)
        return cls(dn=dn, attributes=MappingProxyType(normalized))


SearchResult = tuple[DirectoryEntry, ...]


def _as_values(value: Any) -> tuple[AttributeValue, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(_as_value(item) for item in value)
    return (_as_value(value),)


def _as_value(value: Any) -> AttributeValue:
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value
    return str(value)


class DirectoryTransport(Protocol):
    """Minimal directory client contract used by DirectoryConnector."""

    def open(self, params: ConnectionParams) -> None:
        """Open a session; raise DirectoryConnectionError on transport failure."""

    def bind(self, identity: str, secret: str) -> bool:
        """Authenticate the session; return False when the credentials are refused."""

    def search(self, base_dn: str, search_filter: str) -> SearchResult:
        """Run a subtree search under base_dn."""

    def close(self) -> None:
        """Release the session."""


class Ldap3Transport:
    """
    DirectoryTransport backed by ldap3.

    A pre-built ``Server`` and a client strategy may be supplied, which lets
    ldap3's ``MOCK_SYNC`` in-memory directory stand in for a real server.
    """

    def __init__(self, server: Server | None = None, client_strategy: str = SYNC):
        self._server = server
        self._client_strategy = client_strategy
        self._connection: Connection | None = None

    @property
    def connection(self) -> Connection | None:
        """Underlying ldap3 connection, if open."""
        return self._connection

    def open(self, params: ConnectionParams) -> None:
        """
        Open a connection to the LDAP server.

        Args:
            params: Connection parameters

        Raises:
            DirectoryConnectionError: If the server cannot be reached
        """
        try:
            server = self._server or Server(
                params.host,
                get_info=NONE,
                connect_timeout=params.timeout,
            )
            connection = Connection(
                server,
                version=params.version,
                client_strategy=self._client_strategy,
                receive_timeout=params.receive_timeout,
                raise_exceptions=False,
            )
            connection.open()
        except LDAPException as e:
            logger.error(f"Error connecting to LDAP server {params.host}: {e}")
            raise DirectoryConnectionError(
                f"Cannot connect to LDAP server {params.host}: {e}"
            ) from e

        self._connection = connection
        logger.debug(f"Opened LDAP connection to {params.host} (version {params.version})")

    def bind(self, identity: str, secret: str) -> bool:
        """
        Bind the open connection.

        An empty identity with an empty secret is an anonymous bind; anything
        else is a simple bind. ldap3 refuses a simple bind with an empty
        password before anything is sent; that refusal is reported the same
        way as a server rejection.

        Args:
            identity: Bind DN
            secret: Bind password

        Returns:
            True if the bind succeeded, False if the credentials were refused

        Raises:
            DirectoryConnectionError: On any failure other than refused credentials
        """
        connection = self._require_connection()
        if not identity and not secret:
            connection.authentication = ANONYMOUS
            connection.user = None
            connection.password = None
        else:
            connection.authentication = SIMPLE
            connection.user = identity
            connection.password = secret

        try:
            if connection.bind():
                return True
        except (LDAPPasswordIsMandatoryError, LDAPUserNameIsMandatoryError) as e:
            logger.debug(f"Bind refused by client for {identity}: {e}")
            return False
        except LDAPException as e:
            logger.error(f"Bind error for {identity}: {e}")
            raise DirectoryConnectionError(f"Bind to LDAP server failed: {e}") from e

        result = connection.result or {}
        if result.get("result") in CREDENTIAL_REJECTION_CODES:
            logger.debug(f"Bind rejected for {identity}: {result.get('description')}")
            return False

        logger.error(f"Bind failed for {identity}: {result}")
        raise DirectoryConnectionError(f"Bind to LDAP server failed: {result.get('description')}")

    def search(self, base_dn: str, search_filter: str) -> SearchResult:
        """
        Perform a subtree search returning all attributes.

        Args:
            base_dn: Base DN for search
            search_filter: LDAP filter string

        Returns:
            Matching entries in server order

        Raises:
            DirectoryConnectionError: If the connection drops
            DirectorySearchError: If the server rejects the search
        """
        connection = self._require_connection()
        logger.debug(f"Searching: base={base_dn}, filter={search_filter}")

        try:
            connection.search(
                search_base=base_dn,
                search_filter=search_filter,
                search_scope=SUBTREE,
                attributes=ALL_ATTRIBUTES,
            )
        except LDAPCommunicationError as e:
            raise DirectoryConnectionError(f"Search aborted: {e}") from e
        except LDAPException as e:
            raise DirectorySearchError(f"Search failed: {e}") from e

        result = connection.result or {}
        if result.get("result", RESULT_SUCCESS) != RESULT_SUCCESS:
            raise DirectorySearchError(
                f"Search failed: {result.get('description')} {result.get('message', '')}".strip()
            )

        entries = tuple(
            DirectoryEntry.from_mapping(item["dn"], item.get("attributes", {}))
            for item in connection.response or []
            if item.get("type", "searchResEntry") == "searchResEntry" and "dn" in item
        )
        logger.debug(f"Search returned {len(entries)} entries")
        return entries

    def close(self) -> None:
        """Unbind and drop the connection."""
        if self._connection is None:
            return
        try:
            self._connection.unbind()
        except LDAPException as e:
            logger.warning(f"Error during unbind: {e}")
        finally:
            self._connection = None

    def _require_connection(self) -> Connection:
        if self._connection is None:
            raise NotConnectedError("LDAP transport is not open")
        return self._connection
