"""
Configuration module for AuthGate.

Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.
"""

import logging
from dataclasses import dataclass, fields
from datetime import timedelta
from typing import Any, Dict, Optional

from ..errors import ConfigurationError
from ..token.codec import HMAC_ALGORITHMS, PERMANENT, SigningContext
from ..util.config import (
    load_config_file,
    load_config_from_env,
    merge_configs,
    normalize_config_key,
    parse_duration,
    to_bool,
)

logger = logging.getLogger(__name__)

_BOOL_FIELDS = ("allow_cookie", "allow_token_in_query", "enforce_origin", "sliding_revival")


@dataclass
class AuthGateConfig:
    """Configuration for token issuance and the authentication gate"""
    secret: Optional[str] = None
    algorithm: str = "HS256"
    issuer: str = "authgate"
    token_life_span: Optional[timedelta] = None  # None issues permanent tokens
    allow_cookie: bool = True
    allow_token_in_query: bool = True
    enforce_origin: bool = True
    sliding_revival: bool = False
    cookie_name: str = "token"
    revive_token_endpoint: Optional[str] = "/auth/token"

    def __post_init__(self):
        self.token_life_span = parse_duration(self.token_life_span)
        for name in _BOOL_FIELDS:
            setattr(self, name, to_bool(getattr(self, name)))
        if self.revive_token_endpoint in ("", "none", "None"):
            self.revive_token_endpoint = None

    @property
    def life_span_ms(self) -> int:
        """Token life span in milliseconds, ``-1`` when tokens never expire."""
        if self.token_life_span is None:
            return PERMANENT
        return self.token_life_span // timedelta(milliseconds=1)

    def signing_context(self) -> SigningContext:
        """Build the process signing context, generating a secret if none is set."""
        if self.secret:
            return SigningContext.from_secret(self.secret, self.algorithm)

        logger.warning(
            "No signing secret configured, generating a random one; "
            "issued tokens will not survive a restart"
        )
        return SigningContext.generate(algorithm=self.algorithm)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthGateConfig":
        """Create configuration from a mapping, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        kwargs = {}

        for key, value in (data or {}).items():
            key = normalize_config_key(key)
            if key in known:
                kwargs[key] = value

        return cls(**kwargs)

    @classmethod
    def from_env(cls, prefix: str = "AUTHGATE_") -> "AuthGateConfig":
        """Create configuration from environment variables"""
        return cls.from_dict(load_config_from_env(prefix))

    @classmethod
    def from_file(cls, file_path: str, env_prefix: Optional[str] = None) -> "AuthGateConfig":
        """
        Create configuration from a JSON or YAML file.

        Settings may be nested under an ``authgate`` key. When ``env_prefix``
        is given, matching environment variables override file values.
        """
        data = load_config_file(file_path)
        if isinstance(data.get("authgate"), dict):
            data = data["authgate"]

        if env_prefix:
            data = merge_configs(data, load_config_from_env(env_prefix))

        return cls.from_dict(data)

    def validate(self) -> bool:
        """Validate the configuration"""
        if self.algorithm not in HMAC_ALGORITHMS:
            raise ConfigurationError(f"Unsupported signing algorithm: {self.algorithm}")
        if self.token_life_span is not None and self.token_life_span <= timedelta(0):
            raise ConfigurationError("token_life_span must be positive")
        if not self.cookie_name:
            raise ConfigurationError("cookie_name is required")
        if self.revive_token_endpoint is not None and not self.revive_token_endpoint.startswith("/"):
            raise ConfigurationError("revive_token_endpoint must be an absolute path")
        return True
