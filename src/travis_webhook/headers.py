"""
Header access and detached signature extraction.
"""

import base64
import binascii
from typing import Mapping

from .errors import MissingSignatureError, SignatureDecodeError

# Header carrying the base64 encoded RSA signature of the payload field
SIGNATURE_HEADER = "signature"

CONTENT_TYPE_HEADER = "content-type"

# Travis CI posts notifications as a form, not as a JSON body
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def get_header(headers: Mapping[str, str], name: str) -> str:
    """
    Look up a header case-insensitively.

    Args:
        headers: Request headers
        name: Header name in any case

    Returns:
        The header value, or "" if the header is absent

    Examples:
        >>> get_header({"Content-Type": "text/plain"}, "content-type")
        'text/plain'
        >>> get_header({}, "Signature")
        ''
    """
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return ""


def has_signature_header(headers: Mapping[str, str]) -> bool:
    """Check if a request carries a non-empty Signature header."""
    return get_header(headers, SIGNATURE_HEADER) != ""


def extract_signature(headers: Mapping[str, str]) -> bytes:
    """
    Extract the detached signature from the Signature header.

    Only the transport encoding is checked here; the signature length and
    contents are left to the RSA verification.

    Args:
        headers: Request headers

    Returns:
        Raw signature bytes

    Raises:
        MissingSignatureError: If the header is absent or empty
        SignatureDecodeError: If the header is not standard base64
    """
    signature = get_header(headers, SIGNATURE_HEADER)
    if not signature:
        raise MissingSignatureError("missing Signature header")

    try:
        return base64.b64decode(signature, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SignatureDecodeError("cannot decode signature") from e
