# # Copyright (c) 2024 LDAP Auth Connector
# # SPDX-License-Identifier: MIT
# #
# # LDAP Auth Connector
# # Directory bind and person lookup for upstream authentication layers

"""Directory connector: bind, person search and attribute extraction."""

import logging
from collections.abc import Callable, Sequence
from typing import Any, NamedTuple

from ldap3.utils.conv import escape_filter_chars
from pydantic import BaseModel

from ..config.models import AttributeConfig, AuthConfig, Config, LDAPConfig, expand_auth_query
from .exceptions import DirectoryError, NotConnectedError
from .logging import log_ldap_operation
from .transport import (
    AttributeValue,
    ConnectionParams,
    DirectoryEntry,
    DirectoryTransport,
    Ldap3Transport,
    SearchResult,
)

logger = logging.getLogger(__name__)

TransportFactory = Callable[[], DirectoryTransport]


class BindCredentials(NamedTuple):
    """Identity and secret chosen for a bind attempt."""

    identity: str
    secret: str
    administrative: bool


def escape_filter_value(value: str) -> str:
    """
    Escape a value for safe insertion into an LDAP filter.

    The search methods insert values literally; callers handling untrusted
    input should pass it through this first.
    """
    return escape_filter_chars(value)


def _reconfigure(model: BaseModel, **changes: Any) -> Any:
    """Return a validated copy of a frozen config model with changes applied."""
    return type(model).model_validate({**model.model_dump(), **changes})


class DirectoryConnector:
    """
    Connector binding to an LDAP directory and searching for person records.

    Two states: disconnected (initial, no session) and connected (a bound
    session is held). connect() moves to connected only when the bind
    succeeds; searches require the connected state. A later connect()
    replaces the held session and disconnect() releases it. The connector is
    also a context manager that disconnects on exit. No locking is done: use
    one connector per in-flight request.
    """

    def __init__(
        self,
        ldap_config: LDAPConfig,
        attribute_config: AttributeConfig | None = None,
        auth_config: AuthConfig | None = None,
        transport_factory: TransportFactory = Ldap3Transport,
    ):
        """
        Initialize directory connector.

        Args:
            ldap_config: LDAP connection configuration
            attribute_config: Attribute names used for searching
            auth_config: Authentication policy configuration
            transport_factory: Callable creating a fresh transport per connect()
        """
        self.ldap_config = ldap_config
        self.attribute_config = attribute_config or AttributeConfig()
        self.auth_config = auth_config or AuthConfig()

        self._transport_factory = transport_factory
        self._session: DirectoryTransport | None = None

    @classmethod
    def from_config(
        cls, config: Config, transport_factory: TransportFactory = Ldap3Transport
    ) -> "DirectoryConnector":
        """Create a connector from the root configuration."""
        return cls(config.ldap, config.attributes, config.auth, transport_factory)

    @property
    def is_connected(self) -> bool:
        """Whether a bound session is held."""
        return self._session is not None

    @property
    def auth_query(self) -> str:
        """Filter template used by search_by_auth()."""
        return self.auth_config.auth_query or self.attribute_config.default_auth_query()

    def user_dn(self, username: str) -> str:
        """Bind DN derived from a username and the base DN."""
        return f"{self.attribute_config.username}={username},{self.ldap_config.base_dn}"

    def connect(self, username: str = "", password: str = "") -> bool:
        """
        Connect and bind to the LDAP server.

        With no username the administrative DN is used. With a username and
        a password the derived user DN is bound. With a username and no
        password the administrative DN is used only when allow_no_pass is
        enabled; otherwise the user DN is bound with an empty password and
        the directory decides.

        Args:
            username: Override username
            password: Override password

        Returns:
            True if the bind succeeded, False if the credentials were rejected

        Raises:
            DirectoryConnectionError: If the server cannot be reached or the
                bind fails for reasons other than the credentials
        """
        self.disconnect()

        params = ConnectionParams(
            host=self.ldap_config.host,
            base_dn=self.ldap_config.base_dn,
            version=self.ldap_config.version,
            timeout=self.ldap_config.timeout,
            receive_timeout=self.ldap_config.receive_timeout,
        )
        transport = self._transport_factory()
        transport.open(params)

        credentials = self._select_credentials(username, password)
        try:
            bound = transport.bind(credentials.identity, credentials.secret)
        except Exception:
            transport.close()
            raise

        if not bound:
            log_ldap_operation("bind", credentials.identity, False, "credentials rejected")
            transport.close()
            return False

        log_ldap_operation(
            "bind",
            credentials.identity,
            True,
            "administrative identity" if credentials.administrative else None,
        )
        self._session = transport
        return True

    def _select_credentials(self, username: str, password: str) -> BindCredentials:
        admin = BindCredentials(
            self.ldap_config.admin_dn,
            self.ldap_config.admin_password.get_secret_value(),
            True,
        )

        if not username:
            return admin

        if password:
            return BindCredentials(self.user_dn(username), password, False)

        if self.auth_config.allow_no_pass:
            logger.info(
                f"No password supplied for {username}; binding with the administrative DN"
            )
            return admin

        return BindCredentials(self.user_dn(username), "", False)

    def disconnect(self) -> None:
        """Release the bound session, if any. Safe to call repeatedly."""
        if self._session is None:
            return
        session, self._session = self._session, None
        session.close()
        logger.debug(f"Disconnected from LDAP server {self.ldap_config.host}")

    def __enter__(self) -> "DirectoryConnector":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()

    def _require_session(self) -> DirectoryTransport:
        if self._session is None:
            raise NotConnectedError("connect() must succeed before searching")
        return self._session

    def search_by_uid(self, uid: str) -> SearchResult:
        """Search for the record with the given username attribute value."""
        return self.search_by_query(f"({self.attribute_config.username}={uid})")

    def search_by_email(self, email: str) -> SearchResult:
        """Search for the record with the given mail attribute value."""
        return self.search_by_query(f"({self.attribute_config.mail}={email})")

    def search_by_email_array(self, email: str) -> SearchResult:
        """Search for the record carrying the given address in its mail-array attribute."""
        return self.search_by_query(f"({self.attribute_config.mail_array}={email})")

    def search_by_auth(self, value: str) -> SearchResult:
        """
        Search with the login filter template.

        Every %s in the template receives ``value`` and %% becomes a literal
        %. The default template matches the username attribute or any
        aliased email address.

        Args:
            value: Login value (username or email address)

        Returns:
            Matching entries
        """
        query = expand_auth_query(self.auth_query, value)
        return self.search_by_query(query)

    def search_by_query(self, query: str) -> SearchResult:
        """
        Run a subtree search under the base DN with an arbitrary filter.

        Args:
            query: LDAP filter string, used verbatim

        Returns:
            Matching entries

        Raises:
            NotConnectedError: If no bound session is held
            DirectorySearchError: If the server rejects the search
        """
        session = self._require_session()
        base_dn = self.ldap_config.base_dn

        try:
            results = session.search(base_dn, query)
        except DirectoryError as e:
            log_ldap_operation("search", base_dn, False, str(e))
            raise

        logger.debug(f"Search {query} returned {len(results)} entries")
        return results

    @staticmethod
    def get_attribute_from_results(
        results: Sequence[DirectoryEntry], attr_name: str
    ) -> AttributeValue | None:
        """
        Return the first value of the first attribute named ``attr_name``.

        Entries are scanned in order and names compared case-insensitively;
        the first match anywhere in the result set wins.

        Args:
            results: Search results
            attr_name: Attribute name to look for

        Returns:
            The attribute value, or None if no entry carries it
        """
        wanted = attr_name.lower()
        for entry in results:
            for name, values in entry.attributes.items():
                if name.lower() == wanted:
                    return values[0] if values else None
        return None

    @staticmethod
    def is_valid_result(results: Sequence[DirectoryEntry]) -> bool:
        """Whether the result set holds at least one entry."""
        return len(results) > 0

    def can_allow_no_pass(self) -> bool:
        """Whether binds without a password fall back to the administrative DN."""
        return self.auth_config.allow_no_pass

    def set_allow_no_pass(self, allow_no_pass: bool) -> None:
        """Enable or disable the administrative fallback for password-less binds."""
        self.auth_config = _reconfigure(self.auth_config, allow_no_pass=allow_no_pass)
        if allow_no_pass:
            logger.warning("Password-less binds will use the administrative DN")

    def set_auth_query(self, auth_query: str) -> None:
        """Replace the login filter template; it must contain at least one %s."""
        self.auth_config = _reconfigure(self.auth_config, auth_query=auth_query)

    def set_base_dn(self, base_dn: str) -> None:
        """Replace the base DN used for bind DNs and searches."""
        self.ldap_config = _reconfigure(self.ldap_config, base_dn=base_dn)

    def set_version(self, version: int) -> None:
        """Replace the LDAP protocol version used by the next connect()."""
        self.ldap_config = _reconfigure(self.ldap_config, version=version)
