"""
JSON encoder/decoder for text frames.

Every frame carries one JSON object. Decoding rejects anything else so the
router only ever sees dicts.
"""

import json
from typing import Any

from xorng.messaging.types import ErrorReason

DEFAULT_MAX_MESSAGE_BYTES = 4096


class DecodeError(Exception):
    """Raised when a frame is not a JSON object or is too large.

    str(error) is the text sent back to the client.
    """


def encode(data: dict[str, Any]) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def decode(raw: str, max_bytes: int = DEFAULT_MAX_MESSAGE_BYTES) -> dict[str, Any]:
    """Decode one text frame into a dict.

    Raises DecodeError if the frame exceeds max_bytes, is not valid JSON,
    or is valid JSON but not an object.
    """
    if len(raw.encode("utf-8", errors="replace")) > max_bytes:
        raise DecodeError(ErrorReason.MESSAGE_TOO_LARGE.value)
    try:
        result = json.loads(raw)
    except (json.JSONDecodeError, RecursionError):
        raise DecodeError(ErrorReason.INVALID_JSON.value) from None

    if not isinstance(result, dict):
        raise DecodeError(ErrorReason.INVALID_JSON.value)
    return result
