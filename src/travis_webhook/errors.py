"""
Errors raised while verifying and decoding Travis CI webhooks.

Every error carries the HTTP status a host would typically answer with.
"""


class WebhookError(Exception):
    """Base class for all webhook verification and decoding failures."""

    status_code = 400


class PublicKeyError(WebhookError):
    """The Travis CI public key could not be obtained."""

    status_code = 502


class KeyFetchError(PublicKeyError):
    """Network failure while fetching the Travis CI configuration."""


class ConfigDecodeError(PublicKeyError):
    """The Travis CI configuration document is not valid JSON."""


class InvalidPublicKeyError(PublicKeyError):
    """The configured key is not a PEM encoded PKIX RSA public key."""


class RequestShapeError(WebhookError):
    """The inbound request does not look like a Travis CI notification."""


class WrongMethodError(RequestShapeError):
    status_code = 405


class WrongContentTypeError(RequestShapeError):
    status_code = 415


class MissingSignatureError(RequestShapeError):
    pass


class SignatureDecodeError(RequestShapeError):
    pass


class UnauthorizedPayloadError(WebhookError):
    """
    The signature does not match the payload.

    Deliberately generic: tampered payloads, wrong keys and malformed
    signatures all end up here.
    """

    status_code = 401


class PayloadDecodeError(WebhookError):
    """The payload is not a JSON notification."""
