"""
Verifier for signed Travis CI webhook notifications.
"""

from __future__ import annotations

from cryptography.hazmat.primitives.asymmetric import rsa

from .decoder import decode_text
from .errors import WrongContentTypeError, WrongMethodError
from .headers import CONTENT_TYPE_HEADER, FORM_CONTENT_TYPE, extract_signature
from .keys import DEFAULT_CONFIG_URL, PublicKeyCache
from .models import Payload, WebhookRequest
from .signature import payload_digest, verify_signature

def _check_request_shape(request: WebhookRequest) -> None:
    """
    Reject requests that cannot be Travis CI notifications.

    Runs before the key is resolved, so no network call is made for them.
    """
    if request.method != "POST":
        raise WrongMethodError(
            f'wrong request method "{request.method}" instead of POST'
        )

    content_type = request.header(CONTENT_TYPE_HEADER)
    if content_type != FORM_CONTENT_TYPE:
        raise WrongContentTypeError(
            f"wrong Content-Type header, got {content_type} != want {FORM_CONTENT_TYPE}"
        )


def _verify_payload(key: rsa.RSAPublicKey, request: WebhookRequest) -> bytes:
    signature = extract_signature(request.headers)
    payload = request.form_bytes("payload")
    verify_signature(key, signature, payload_digest(payload))
    return payload


class WebhookVerifier:
    """
    Authenticates and decodes Travis CI webhook notifications.

    The Travis CI public key is fetched on first use and cached by the
    verifier's PublicKeyCache; keep one verifier for the lifetime of the
    application.

    Args:
        config_url: URL of the Travis CI configuration document.
            Default: https://api.travis-ci.org/config
        timeout_s: Key fetch timeout in seconds. Default: None (no timeout)
        key_cache: Cache to share with other verifiers. A new cache is
            created when omitted.

    Example:
        >>> verifier = WebhookVerifier()
        >>> request = WebhookRequest(method="POST", headers=headers, body=body)
        >>> payload = verifier.authenticate_and_decode_sync(request)
        >>> if payload.passed():
        ...     print(f"Build {payload.number} passed")
    """

    def __init__(
        self,
        config_url: str = DEFAULT_CONFIG_URL,
        timeout_s: float | None = None,
        key_cache: PublicKeyCache | None = None,
    ):
        self.config_url = config_url
        self.timeout_s = timeout_s
        self.key_cache = key_cache or PublicKeyCache(
            config_url=config_url,
            timeout_s=timeout_s,
        )

    async def authenticate(self, request: WebhookRequest) -> bytes:
        """
        Verify a notification asynchronously.

        Args:
            request: Inbound request

        Returns:
            The payload form field as the exact bytes that were signed

        Raises:
            WrongMethodError: If the method is not POST
            WrongContentTypeError: If the body is not a URL-encoded form
            PublicKeyError: If the Travis CI key cannot be obtained
            MissingSignatureError: If the Signature header is missing
            SignatureDecodeError: If the Signature header is not base64
            UnauthorizedPayloadError: If the signature does not match
        """
        _check_request_shape(request)
        key = await self.key_cache.aget()
        return _verify_payload(key, request)

    def authenticate_sync(self, request: WebhookRequest) -> bytes:
        """
        Verify a notification synchronously.

        Same contract as authenticate().
        """
        _check_request_shape(request)
        key = self.key_cache.get()
        return _verify_payload(key, request)

    async def authenticate_and_decode(self, request: WebhookRequest) -> Payload:
        """
        Verify a notification asynchronously and decode its payload.

        Raises:
            WebhookError: Any error raised by authenticate(), or
                PayloadDecodeError if the verified payload is not valid JSON
        """
        return decode_text(await self.authenticate(request))

    def authenticate_and_decode_sync(self, request: WebhookRequest) -> Payload:
        """Verify a notification synchronously and decode its payload."""
        return decode_text(self.authenticate_sync(request))
