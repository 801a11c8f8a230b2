"""
Encoding and decoding utilities for AuthGate.
Provides HTTP Basic credential handling, URI component encoding and
tolerant JSON encoding for response bodies.
"""

import base64
import binascii
import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Tuple
from urllib.parse import quote

# Characters left unescaped by ECMAScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(value: str) -> str:
    """Percent-encode a single URI component (query or fragment value)."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


def encode_basic_credentials(username: str, password: str) -> str:
    """Build an ``Authorization`` header value for HTTP Basic auth."""
    credentials = f"{username}:{password}"
    encoded = base64.b64encode(credentials.encode('utf-8')).decode('ascii')
    return f"Basic {encoded}"


def decode_basic_credentials(header: Optional[str]) -> Optional[Tuple[str, str]]:
    """
    Parse an HTTP Basic ``Authorization`` header.

    Returns ``(username, password)`` or ``None`` when the header is missing,
    uses another scheme, is not valid base64 (standard or URL-safe
    alphabet) or lacks the ``:`` separator.
    """
    if not header:
        return None

    scheme, _, encoded = header.strip().partition(' ')
    if scheme.lower() != 'basic' or not encoded.strip():
        return None

    encoded = encoded.strip()
    padded = encoded + '=' * (-len(encoded) % 4)

    try:
        if '-' in padded or '_' in padded:
            raw = base64.urlsafe_b64decode(padded)
        else:
            raw = base64.b64decode(padded, validate=True)
        decoded = raw.decode('utf-8')
    except (binascii.Error, ValueError):
        return None

    if ':' not in decoded:
        return None

    username, password = decoded.split(':', 1)
    return username, password


def json_serializer(obj: Any) -> Any:
    """``default`` hook for ``json.dumps`` covering the types AuthGate returns."""
    if hasattr(obj, 'to_dict'):
        return obj.to_dict()
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    if hasattr(obj, '__dict__'):
        return {k: v for k, v in vars(obj).items() if not k.startswith('_')}
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def safe_json_encode(data: Any, pretty: bool = False) -> str:
    """Encode ``data`` as JSON, falling back to ``json_serializer`` for unknown types."""
    try:
        if pretty:
            return json.dumps(data, indent=2, separators=(',', ': '),
                              default=json_serializer, ensure_ascii=False)
        return json.dumps(data, default=json_serializer,
                          separators=(',', ':'), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Failed to encode JSON: {e}")
