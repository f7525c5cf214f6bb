"""
Pagination tokens for the review store.

A cursor is the hash key of the index a query used plus the ``review_id`` of the
last item returned. Clients receive it as a JSON string and echo it back
verbatim; a token minted for one index is rejected by every other.
"""

import json
from typing import Dict, Optional

from review_service.core.errors import InvalidCursorError

RANGE_KEY = "review_id"


def encode_cursor(cursor: Optional[Dict[str, str]]) -> Optional[str]:
    if not cursor:
        return None
    return json.dumps(cursor, separators=(",", ":"), sort_keys=True)


def decode_cursor(
    token: Optional[str],
    hash_attribute: str,
    hash_value: Optional[str] = None,
) -> Optional[Dict[str, str]]:
    """
    Parse a client token for a query on the index keyed by ``hash_attribute``.

    Raises:
        InvalidCursorError: malformed JSON, missing keys, extra keys, or a hash
            value that differs from the one being queried
    """
    if token is None or token == "":
        return None

    try:
        cursor = json.loads(token)
    except (TypeError, ValueError):
        raise InvalidCursorError("Malformed pagination token", details={"next_token": token})

    if not isinstance(cursor, dict):
        raise InvalidCursorError("Malformed pagination token", details={"next_token": token})

    expected = {hash_attribute, RANGE_KEY}
    if set(cursor) != expected or not all(isinstance(cursor[k], str) and cursor[k] for k in expected):
        raise InvalidCursorError(
            "Pagination token was not issued for this query",
            details={"next_token": token, "expected_keys": sorted(expected)},
        )

    if hash_value is not None and cursor[hash_attribute] != hash_value:
        raise InvalidCursorError(
            "Pagination token was not issued for this query",
            details={"next_token": token},
        )

    return cursor
