# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Utility package providing common helper functions for AuthGate.

This package includes:
- Configuration utilities for environment variables, durations and config files
- Encoding utilities for HTTP Basic credentials and URI components
- Helpers for awaiting sync-or-async collaborators
"""

from .aio import maybe_await
from .config import (
    load_config_from_env, to_bool, parse_duration_string, parse_duration,
    merge_configs, normalize_config_key, load_config_file
)
from .encoding import (
    encode_uri_component, encode_basic_credentials, decode_basic_credentials,
    json_serializer, safe_json_encode
)

__all__ = [
    'maybe_await',

    # Configuration utilities
    'load_config_from_env', 'to_bool', 'parse_duration_string', 'parse_duration',
    'merge_configs', 'normalize_config_key', 'load_config_file',

    # Encoding utilities
    'encode_uri_component', 'encode_basic_credentials', 'decode_basic_credentials',
    'json_serializer', 'safe_json_encode',
]
