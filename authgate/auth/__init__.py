# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package auth provides the authentication gate of AuthGate.

This package implements:
- Pluggable credential verification strategies
- Username/password (local) authentication, including HTTP Basic
- Token issuance on successful authentication, with JSON, redirect or cookie responses
- The protected-route gate that verifies bearer tokens
- Token revival, programmatic login and logout
"""

from .strategy import (
    AuthOptions,
    AuthStrategy,
    LocalStrategy,
    Outcome,
    StrategyResult,
)

from .gate import AuthGate

__all__ = [
    'AuthGate',
    'AuthOptions',
    'AuthStrategy',
    'LocalStrategy',
    'Outcome',
    'StrategyResult',
]
