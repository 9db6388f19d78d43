"""
Travis CI webhook verification for Python

Verify the RSA signature of Travis CI webhook notifications and decode them.
"""

from .decoder import decode, decode_text
from .errors import (
    ConfigDecodeError,
    InvalidPublicKeyError,
    KeyFetchError,
    MissingSignatureError,
    PayloadDecodeError,
    PublicKeyError,
    RequestShapeError,
    SignatureDecodeError,
    UnauthorizedPayloadError,
    WebhookError,
    WrongContentTypeError,
    WrongMethodError,
)
from .keys import DEFAULT_CONFIG_URL, PublicKeyCache, parse_public_key
from .models import Color, Config, Payload, Repository, WebhookRequest, WebhookState
from .verifier import WebhookVerifier
from .middleware.wsgi import TravisWebhookWSGIMiddleware

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_CONFIG_URL",
    "Color",
    "Config",
    "ConfigDecodeError",
    "InvalidPublicKeyError",
    "KeyFetchError",
    "MissingSignatureError",
    "Payload",
    "PayloadDecodeError",
    "PublicKeyCache",
    "PublicKeyError",
    "Repository",
    "RequestShapeError",
    "SignatureDecodeError",
    "TravisWebhookWSGIMiddleware",
    "UnauthorizedPayloadError",
    "WebhookError",
    "WebhookRequest",
    "WebhookState",
    "WebhookVerifier",
    "WrongContentTypeError",
    "WrongMethodError",
    "decode",
    "decode_text",
    "parse_public_key",
]

# ASGI middleware - optional, requires starlette
try:
    from .middleware.asgi import TravisWebhookASGIMiddleware
    __all__.append("TravisWebhookASGIMiddleware")
except ImportError:
    pass
