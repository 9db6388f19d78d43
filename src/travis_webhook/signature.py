"""
Payload digest and RSA signature verification.
"""

from __future__ import annotations

import hashlib

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from .errors import UnauthorizedPayloadError


def payload_digest(payload: bytes | str) -> bytes:
    """
    Compute the SHA-1 digest Travis CI signs.

    The payload must be the form field exactly as received, preferably as
    raw bytes; text is encoded as UTF-8. Parsing and re-encoding the JSON
    changes whitespace and key order and breaks the signature.

    Returns:
        20-byte SHA-1 digest
    """
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hashlib.sha1(payload).digest()


def verify_signature(
    key: rsa.RSAPublicKey,
    signature: bytes,
    digest: bytes,
) -> None:
    """
    Verify a PKCS#1 v1.5 signature over a precomputed SHA-1 digest.

    Raises:
        UnauthorizedPayloadError: On any verification failure
    """
    try:
        key.verify(signature, digest, padding.PKCS1v15(), Prehashed(hashes.SHA1()))
    except (InvalidSignature, ValueError) as e:
        raise UnauthorizedPayloadError("unauthorized payload") from e
