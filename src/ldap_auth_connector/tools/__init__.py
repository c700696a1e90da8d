# # Copyright (c) 2024 LDAP Auth Connector
# # SPDX-License-Identifier: MIT
# #
# # LDAP Auth Connector
# # Directory bind and person lookup for upstream authentication layers

"""Tools for directory identity operations."""

from .identity import IdentityTool

__all__ = ["IdentityTool"]
