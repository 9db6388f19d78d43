"""
JSON decoding of Travis CI notifications.

These functions perform no signature check. Use WebhookVerifier for
requests coming from the network.
"""

from __future__ import annotations

import json
from typing import IO, Any

from .errors import PayloadDecodeError
from .models import Payload

_decoder = json.JSONDecoder()


def _as_text(content: str | bytes) -> str:
    # Invalid UTF-8 sequences become U+FFFD instead of failing
    if isinstance(content, bytes):
        return content.decode("utf-8", errors="replace")
    return content


def _payload_from_json(data: Any) -> Payload:
    if data is None:
        return Payload()
    if not isinstance(data, dict):
        raise PayloadDecodeError("cannot decode payload")
    return Payload.from_dict(data)


def decode_text(text: str | bytes) -> Payload:
    """
    Decode a JSON notification.

    The whole text must be a single JSON document. A JSON null decodes to
    an empty Payload.

    Raises:
        PayloadDecodeError: On malformed or too deeply nested JSON, a
            non-object document or a field of the wrong type
    """
    try:
        data: Any = json.loads(_as_text(text))
    except (ValueError, RecursionError) as e:
        raise PayloadDecodeError("cannot decode payload") from e
    return _payload_from_json(data)


def decode(stream: IO[Any] | None) -> Payload:
    """
    Decode a notification read from a binary or text stream.

    Only the first JSON value is decoded; anything after it is ignored.

    Args:
        stream: Any object with a read() method

    Raises:
        PayloadDecodeError: If stream is None, cannot be read or does not
            start with a JSON notification

    Example:
        >>> with open("notification.json", "rb") as f:
        ...     payload = decode(f)
    """
    if stream is None:
        raise PayloadDecodeError("cannot parse from None stream")

    try:
        content = stream.read()
    except (OSError, ValueError) as e:
        raise PayloadDecodeError("cannot decode payload") from e

    try:
        data, _ = _decoder.raw_decode(_as_text(content).lstrip(" \t\r\n"))
    except (ValueError, RecursionError) as e:
        raise PayloadDecodeError("cannot decode payload") from e
    return _payload_from_json(data)
