# # Copyright (c) 2024 LDAP Auth Connector
# # SPDX-License-Identifier: MIT
# #
# # LDAP Auth Connector
# # Directory bind and person lookup for upstream authentication layers

"""Login and lookup flows on top of DirectoryConnector."""

from pydantic import BaseModel, Field

from .ldap_connector import DirectoryConnector
from .logging import get_logger
from .transport import DirectoryEntry, SearchResult

logger = get_logger(__name__)

# Never handed upstream
SENSITIVE_ATTRIBUTES = frozenset({"userpassword", "sambantpassword", "sambalmpassword"})


class AuthenticatedIdentity(BaseModel):
    """Identity attributes extracted for the upstream authentication layer."""

    user_id: str = Field(description="User ID with the configured prefix applied")
    username: str = Field(description="Username attribute value, or the login value if absent")
    dn: str = Field(description="Distinguished name of the matched entry")
    mail: str | None = Field(None, description="Primary email address")
    attributes: dict[str, list[str]] = Field(
        default_factory=dict, description="Non-sensitive text attributes of the matched entry"
    )


class DirectoryAuthenticator:
    """Resolves logins and identifiers to identities via a DirectoryConnector."""

    def __init__(self, connector: DirectoryConnector):
        """Initialize the authenticator.

        Args:
            connector: Directory connector instance
        """
        self.connector = connector

    def authenticate(self, username: str, password: str) -> AuthenticatedIdentity | None:
        """
        Verify credentials and resolve the matching identity.

        Password verification follows the connector's bind policy, so with
        allow_no_pass enabled an empty password resolves the identity
        through the administrative bind. The session is released before
        returning.

        Args:
            username: Login name (bound as the username attribute)
            password: Password

        Returns:
            The identity, or None if the bind was rejected or no record
            carrying a user ID matched
        """
        if not username:
            logger.warning("Authentication attempted without a username")
            return None

        with self.connector:
            if not self.connector.connect(username, password):
                logger.info(f"Authentication rejected for {username}")
                return None
            results = self.connector.search_by_auth(username)

        return self._identity_from_results(results, username)

    def lookup(self, identifier: str) -> AuthenticatedIdentity | None:
        """
        Resolve a username or email address through the administrative bind.

        Args:
            identifier: Username or any aliased email address

        Returns:
            The identity, or None if nothing matched
        """
        with self.connector:
            if not self._admin_connect():
                return None
            results = self.connector.search_by_auth(identifier)

        return self._identity_from_results(results, identifier)

    def lookup_by_uid(self, uid: str) -> AuthenticatedIdentity | None:
        """Resolve a username through the administrative bind."""
        with self.connector:
            if not self._admin_connect():
                return None
            results = self.connector.search_by_uid(uid)

        return self._identity_from_results(results, uid)

    def _admin_connect(self) -> bool:
        if self.connector.connect():
            return True
        logger.error("Administrative bind rejected; check admin DN and password")
        return False

    def _identity_from_results(
        self, results: SearchResult, login: str
    ) -> AuthenticatedIdentity | None:
        if not self.connector.is_valid_result(results):
            logger.info(f"No directory record found for {login}")
            return None

        attributes = self.connector.attribute_config
        user_id = self._text_attribute(results, attributes.user_id)
        if user_id is None:
            logger.warning(f"Directory record for {login} has no {attributes.user_id} attribute")
            return None

        if len(results) > 1:
            logger.warning(f"{len(results)} directory records matched {login}; using the first")

        entry = results[0]
        return AuthenticatedIdentity(
            user_id=f"{self.connector.auth_config.user_id_prefix}{user_id}",
            username=self._text_attribute(results, attributes.username) or login,
            dn=entry.dn,
            mail=self._text_attribute(results, attributes.mail),
            attributes=_public_attributes(entry),
        )

    def _text_attribute(self, results: SearchResult, name: str) -> str | None:
        value = self.connector.get_attribute_from_results(results, name)
        return value if isinstance(value, str) else None


def _public_attributes(entry: DirectoryEntry) -> dict[str, list[str]]:
    """Text attributes of an entry, minus credentials and binary values."""
    public = {}
    for name, values in entry.attributes.items():
        if name.lower() in SENSITIVE_ATTRIBUTES:
            continue
        text = [value for value in values if isinstance(value, str)]
        if values and not text:
            continue
        public[name] = text
    return public
