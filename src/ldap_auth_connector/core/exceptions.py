# # Copyright (c) 2024 LDAP Auth Connector
# # SPDX-License-Identifier: MIT
# #
# # LDAP Auth Connector
# # Directory bind and person lookup for upstream authentication layers

"""Exceptions raised by the directory connector."""


class DirectoryError(Exception):
    """Base class for directory connector errors."""


class DirectoryConnectionError(DirectoryError, ConnectionError):
    """Transport, network or protocol failure unrelated to credentials."""


class DirectorySearchError(DirectoryError):
    """The directory server rejected a search request."""


class NotConnectedError(DirectoryError):
    """A search was attempted before a successful connect()."""
