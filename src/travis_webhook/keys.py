"""
Fetching, parsing and caching the Travis CI webhook public key.
"""

from __future__ import annotations

import re
import threading
from typing import Any

import httpx
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import load_pem_public_key

from .errors import ConfigDecodeError, InvalidPublicKeyError, KeyFetchError

# Travis CI configuration document holding the webhook public key
DEFAULT_CONFIG_URL = "https://api.travis-ci.org/config"

_PEM_BLOCK = re.compile(
    r"-----BEGIN (?P<label>[^-\r\n]*)-----.*?-----END (?P=label)-----",
    re.DOTALL,
)


def parse_public_key(pem: str) -> rsa.RSAPublicKey:
    """
    Parse a PEM encoded PKIX RSA public key.

    Only the first PEM block is considered and its label must be exactly
    "PUBLIC KEY"; PKCS#1 "RSA PUBLIC KEY" blocks are rejected.

    Raises:
        InvalidPublicKeyError: On bad framing, a wrong label, undecodable
            key material or a non-RSA key
    """
    match = _PEM_BLOCK.search(pem)
    if match is None or match.group("label") != "PUBLIC KEY":
        raise InvalidPublicKeyError("invalid public key")

    try:
        key = load_pem_public_key(match.group(0).encode("ascii"))
    except (ValueError, UnsupportedAlgorithm) as e:
        raise InvalidPublicKeyError("invalid public key") from e

    if not isinstance(key, rsa.RSAPublicKey):
        raise InvalidPublicKeyError("invalid public key")
    return key


def _public_key_from_config(response: httpx.Response) -> str:
    """Pull config.notifications.webhook.public_key out of the document."""
    try:
        node: Any = response.json()
    except ValueError as e:
        raise ConfigDecodeError("cannot decode travis configuration") from e

    for name in ("config", "notifications", "webhook", "public_key"):
        if not isinstance(node, dict):
            raise ConfigDecodeError("cannot decode travis configuration")
        node = node.get(name)
        if node is None:
            return ""

    if not isinstance(node, str):
        raise ConfigDecodeError("cannot decode travis configuration")
    return node


def fetch_public_key(
    config_url: str = DEFAULT_CONFIG_URL,
    timeout_s: float | None = None,
) -> rsa.RSAPublicKey:
    """
    Fetch and parse the webhook public key synchronously.

    Args:
        config_url: URL of the Travis CI configuration document
        timeout_s: Request timeout in seconds. None disables the timeout.

    Raises:
        KeyFetchError: On network errors
        ConfigDecodeError: If the document is not the expected JSON
        InvalidPublicKeyError: If the key cannot be parsed
    """
    try:
        with httpx.Client(timeout=timeout_s) as client:
            response = client.get(config_url)
    except httpx.HTTPError as e:
        raise KeyFetchError("cannot fetch travis public key") from e

    return parse_public_key(_public_key_from_config(response))


async def afetch_public_key(
    config_url: str = DEFAULT_CONFIG_URL,
    timeout_s: float | None = None,
) -> rsa.RSAPublicKey:
    """
    Fetch and parse the webhook public key asynchronously.

    Same contract as fetch_public_key(). Cancelling the calling task aborts
    the request.
    """
    try:
        async with httpx.AsyncClient(timeout=timeout_s) as client:
            response = await client.get(config_url)
    except httpx.HTTPError as e:
        raise KeyFetchError("cannot fetch travis public key") from e

    return parse_public_key(_public_key_from_config(response))


class PublicKeyCache:
    """
    Single-assignment holder for the Travis CI public key.

    The key is fetched on first use and kept for the lifetime of the cache.
    Fetches run outside the lock, so a cold cache hit by concurrent callers
    may fetch more than once; the first key published wins and every caller
    gets that same object. A failed fetch leaves the cache empty.

    Args:
        config_url: URL of the Travis CI configuration document
        timeout_s: Fetch timeout in seconds. None disables the timeout.

    Example:
        >>> cache = PublicKeyCache()
        >>> key = cache.get()
        >>> cache.get() is key
        True
    """

    def __init__(
        self,
        config_url: str = DEFAULT_CONFIG_URL,
        timeout_s: float | None = None,
    ):
        self.config_url = config_url
        self.timeout_s = timeout_s
        self._key: rsa.RSAPublicKey | None = None
        self._lock = threading.Lock()

    @property
    def cached(self) -> rsa.RSAPublicKey | None:
        """The cached key, or None before the first successful fetch."""
        return self._key

    def get(self) -> rsa.RSAPublicKey:
        """Return the cached key, fetching it synchronously on a miss."""
        key = self._key
        if key is not None:
            return key
        return self._publish(fetch_public_key(self.config_url, self.timeout_s))

    async def aget(self) -> rsa.RSAPublicKey:
        """Return the cached key, fetching it asynchronously on a miss."""
        key = self._key
        if key is not None:
            return key
        return self._publish(await afetch_public_key(self.config_url, self.timeout_s))

    def clear(self) -> None:
        """Forget the cached key so the next call fetches again."""
        with self._lock:
            self._key = None

    def _publish(self, key: rsa.RSAPublicKey) -> rsa.RSAPublicKey:
        with self._lock:
            if self._key is None:
                self._key = key
            return self._key
