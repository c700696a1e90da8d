# # Copyright (c) 2024 LDAP Auth Connector
# # SPDX-License-Identifier: MIT
# #
# # LDAP Auth Connector
# # Directory bind and person lookup for upstream authentication layers

"""Configuration models for LDAP Auth Connector."""

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

AUTH_QUERY_PLACEHOLDER = "%s"
AUTH_QUERY_LITERAL_PERCENT = "%%"


def expand_auth_query(template: str, value: str) -> str:
    """
    Substitute ``value`` into every %s of a filter template.

    ``%%`` stands for a literal ``%`` and is never read as part of a
    placeholder, so ``%%s`` yields ``%s`` verbatim.
    """
    return "%".join(
        segment.replace(AUTH_QUERY_PLACEHOLDER, value)
        for segment in template.split(AUTH_QUERY_LITERAL_PERCENT)
    )


def has_auth_query_placeholder(template: str) -> bool:
    """Whether a template has a %s that is not an escaped literal."""
    return any(
        AUTH_QUERY_PLACEHOLDER in segment
        for segment in template.split(AUTH_QUERY_LITERAL_PERCENT)
    )


class LDAPConfig(BaseModel):
    """LDAP connection configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(..., description="LDAP hostname, IP address or ldap:// URL")
    base_dn: str = Field(..., description="Base Distinguished Name for person searches")
    admin_dn: str = Field(
        default="", description="Administrative DN used when no override username is given"
    )
    admin_password: SecretStr = Field(
        default=SecretStr(""), description="Password for the administrative DN"
    )
    version: int = Field(default=3, description="LDAP protocol version")
    timeout: int = Field(default=30, description="Connection timeout in seconds")
    receive_timeout: int = Field(default=10, description="Receive timeout in seconds")

    @field_validator("host")
    @classmethod
    def validate_host(cls, v):
        """Validate host is not blank."""
        if not v.strip():
            raise ValueError("Host must not be empty")
        return v.strip()

    @field_validator("version")
    @classmethod
    def validate_version(cls, v):
        """Validate LDAP protocol version."""
        if v not in (2, 3):
            raise ValueError("LDAP version must be 2 or 3")
        return v

    @field_validator("timeout", "receive_timeout")
    @classmethod
    def validate_positive_int(cls, v):
        """Validate positive integers."""
        if v <= 0:
            raise ValueError("Value must be positive")
        return v


class AttributeConfig(BaseModel):
    """Attribute names used when searching for people."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(
        default="employeeNumber", description="Attribute holding the user ID handed upstream"
    )
    username: str = Field(
        default="uid", description="Attribute holding the username, also used to build bind DNs"
    )
    mail: str = Field(default="mail", description="Attribute holding the primary email address")
    mail_array: str = Field(
        default="mailLocalAddress",
        description="Multi-valued attribute holding every email address and alias",
    )

    @field_validator("user_id", "username", "mail", "mail_array")
    @classmethod
    def validate_attribute_name(cls, v):
        """Validate attribute names are non-empty."""
        if not v or not v.strip():
            raise ValueError("Attribute name must not be empty")
        return v.strip()

    def default_auth_query(self) -> str:
        """Filter template matching the username or any aliased email address."""
        return f"(|({self.username}={AUTH_QUERY_PLACEHOLDER})({self.mail_array}={AUTH_QUERY_PLACEHOLDER}))"


class AuthConfig(BaseModel):
    """Authentication policy configuration."""

    model_config = ConfigDict(frozen=True)

    allow_no_pass: bool = Field(
        default=False,
        description=(
            "Bind with the administrative DN when an override username comes "
            "without a password, skipping password verification"
        ),
    )
    auth_query: str | None = Field(
        default=None,
        description="Filter template for login lookups; every %s receives the login value",
    )
    user_id_prefix: str = Field(
        default="", description="Prefix prepended to the user ID handed upstream"
    )

    @field_validator("auth_query")
    @classmethod
    def validate_auth_query(cls, v):
        """Validate the filter template carries at least one placeholder."""
        if v is not None and not has_auth_query_placeholder(v):
            raise ValueError("Auth query must contain at least one %s placeholder")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    file: str | None = Field(default=None, description="Log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Level must be one of: {valid_levels}")
        return v.upper()


class Config(BaseModel):
    """Main configuration class for LDAP Auth Connector."""

    ldap: LDAPConfig
    attributes: AttributeConfig = Field(default_factory=AttributeConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
