# # Copyright (c) 2024 LDAP Auth Connector
# # SPDX-License-Identifier: MIT
# #
# # LDAP Auth Connector
# # Directory bind and person lookup for upstream authentication layers

"""Environment-variable configuration source."""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import AttributeConfig, AuthConfig, Config, LDAPConfig, LoggingConfig


class LDAPEnvSettings(BaseSettings):
    """Connector settings read from the process environment."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    host: str = Field(..., alias="LDAP_HOST")
    base_dn: str = Field(..., alias="LDAP_BASE_DN")
    admin_dn: str = Field("", alias="LDAP_DN")
    admin_password: SecretStr = Field(SecretStr(""), alias="LDAP_PASSWORD")
    version: int = Field(3, alias="LDAP_VERSION")

    allow_no_pass: bool = Field(False, alias="LDAP_ALLOW_NO_PASS")
    search_user_id: str = Field("employeeNumber", alias="LDAP_SEARCH_USER_ID")
    search_username: str = Field("uid", alias="LDAP_SEARCH_USERNAME")
    search_mail: str = Field("mail", alias="LDAP_SEARCH_MAIL")
    search_mail_array: str = Field("mailLocalAddress", alias="LDAP_SEARCH_MAIL_ARRAY")
    search_auth_query: str | None = Field(None, alias="LDAP_SEARCH_AUTH_QUERY")
    user_id_prefix: str = Field("", alias="LDAP_DB_USER_ID_PREFIX")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_file: str | None = Field(None, alias="LOG_FILE")

    def to_config(self) -> Config:
        """Convert flat environment settings into the nested configuration."""
        return Config(
            ldap=LDAPConfig(
                host=self.host,
                base_dn=self.base_dn,
                admin_dn=self.admin_dn,
                admin_password=self.admin_password,
                version=self.version,
            ),
            attributes=AttributeConfig(
                user_id=self.search_user_id,
                username=self.search_username,
                mail=self.search_mail,
                mail_array=self.search_mail_array,
            ),
            auth=AuthConfig(
                allow_no_pass=self.allow_no_pass,
                auth_query=self.search_auth_query or None,
                user_id_prefix=self.user_id_prefix,
            ),
            logging=LoggingConfig(level=self.log_level, file=self.log_file or None),
        )


def load_config_from_env() -> Config:
    """Build the configuration from environment variables."""
    # Instantiated here so nothing is read from the environment at import time
    return LDAPEnvSettings().to_config()
