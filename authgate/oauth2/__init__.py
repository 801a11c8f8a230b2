# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
OAuth 2.0 authorization server (RFC 6749).

Subclass ``AuthorizationServer``, implement ``find_client`` and
``verify_client``, and override the grant hooks the deployment supports.
"""

from .types import (
    AuthorizationTokenResponse,
    AuthorizationTokenType,
    ExtensionGrant,
    GrantType,
    ResponseType,
)
from .server import AuthorizationServer

__all__ = [
    'AuthorizationServer',
    'AuthorizationTokenResponse',
    'AuthorizationTokenType',
    'ExtensionGrant',
    'GrantType',
    'ResponseType',
]
