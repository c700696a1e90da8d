# # Copyright (c) 2024 LDAP Auth Connector
# # SPDX-License-Identifier: MIT
# #
# # LDAP Auth Connector
# # Directory bind and person lookup for upstream authentication layers

"""LDAP Auth Connector - bind, search and identity extraction against LDAP directories."""

__version__ = "0.1.0"
__description__ = "Directory-service authentication connector built on ldap3"
