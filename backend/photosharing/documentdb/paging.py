"""
Continuation tokens for keyset pagination.

A token records the sort-key values of the last row of a page. It is
URL-safe base64 of a small JSON object so clients can pass it back
verbatim in a query string.
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

TOKEN_VERSION = 1


class InvalidContinuationTokenError(ValueError):
    """The token was not produced by this store or has been tampered with."""


@dataclass
class QueryPage:
    items: List[Dict[str, Any]] = field(default_factory=list)
    continuation_token: Optional[str] = None


def encode_token(keys: List[Any]) -> str:
    raw = json.dumps({"v": TOKEN_VERSION, "k": keys}, separators=(",", ":"))
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_token(token: str, expected_keys: int) -> List[Any]:
    padded = token + "=" * (-len(token) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise InvalidContinuationTokenError("Continuation token is not readable") from exc

    if not isinstance(payload, dict) or payload.get("v") != TOKEN_VERSION:
        raise InvalidContinuationTokenError("Unsupported continuation token version")
    keys = payload.get("k")
    if not isinstance(keys, list) or len(keys) != expected_keys:
        raise InvalidContinuationTokenError("Continuation token does not match this query")
    return keys
