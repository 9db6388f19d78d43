"""
WSGI middleware for Travis CI webhook verification (Flask).
"""

from __future__ import annotations

import json
from http import HTTPStatus
from io import BytesIO
from typing import Any, Callable, Iterable

from ..errors import WebhookError
from ..headers import SIGNATURE_HEADER, has_signature_header
from ..keys import DEFAULT_CONFIG_URL
from ..models import WebhookRequest, WebhookState
from ..verifier import WebhookVerifier

DECISION_HEADER = "X-Travis-Webhook-Decision"

ENVIRON_KEY = "travis_webhook.state"


def _extract_headers(environ: dict[str, Any]) -> dict[str, str]:
    """Extract HTTP headers from WSGI environ."""
    headers: dict[str, str] = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            # HTTP_SIGNATURE -> signature
            header_name = key[5:].replace("_", "-").lower()
            if header_name == SIGNATURE_HEADER:
                # Servers join repeated headers with commas; keep the first
                value = value.split(",", 1)[0].strip()
            headers[header_name] = value
        elif key == "CONTENT_TYPE":
            headers["content-type"] = value
        elif key == "CONTENT_LENGTH":
            headers["content-length"] = value
    return headers


def _read_body(environ: dict[str, Any]) -> bytes:
    """Read the request body and re-seed wsgi.input for downstream apps."""
    content_length = environ.get("CONTENT_LENGTH")
    if not content_length or "wsgi.input" not in environ:
        return b""
    try:
        length = int(content_length)
    except ValueError:
        return b""
    body = environ["wsgi.input"].read(length)
    environ["wsgi.input"] = BytesIO(body)
    return body


class TravisWebhookWSGIMiddleware:
    """
    WSGI middleware for Travis CI webhook verification.

    Attaches verification state to `environ["travis_webhook.state"]` with:
    - signed: bool - whether request had a Signature header
    - payload: Payload | None - decoded notification if verified
    - error: WebhookError | None - why verification failed

    Args:
        app: WSGI application
        config_url: URL of the Travis CI configuration document
        require_verified: If True, reject unsigned or unverified requests.
            If False (default), operate in observe mode - attach state but allow all.
        timeout_s: Key fetch timeout in seconds
        paths: Request paths to check. Default: every path.

    Example (Flask):
        >>> from flask import Flask, request
        >>> from travis_webhook.middleware.wsgi import TravisWebhookWSGIMiddleware
        >>>
        >>> app = Flask(__name__)
        >>> app.wsgi_app = TravisWebhookWSGIMiddleware(app.wsgi_app, require_verified=True)
        >>>
        >>> @app.post("/travis")
        >>> def travis():
        ...     state = request.environ["travis_webhook.state"]
        ...     return {"build": state.payload.number}
    """

    def __init__(
        self,
        app: Callable[..., Iterable[bytes]],
        config_url: str = DEFAULT_CONFIG_URL,
        require_verified: bool = False,
        timeout_s: float | None = None,
        paths: Iterable[str] | None = None,
    ):
        self.app = app
        self.config_url = config_url
        self.require_verified = require_verified
        self.paths = frozenset(paths) if paths is not None else None
        self.verifier = WebhookVerifier(config_url=config_url, timeout_s=timeout_s)

    def __call__(
        self,
        environ: dict[str, Any],
        start_response: Callable[..., Any],
    ) -> Iterable[bytes]:
        if self.paths is not None and environ.get("PATH_INFO", "/") not in self.paths:
            return self.app(environ, start_response)

        headers = _extract_headers(environ)

        if not has_signature_header(headers):
            environ[ENVIRON_KEY] = WebhookState(signed=False)

            if self.require_verified:
                return self._error_response(
                    start_response,
                    HTTPStatus.UNAUTHORIZED,
                    "missing Signature header",
                )

            return self.app(environ, start_response)

        try:
            request = WebhookRequest(
                method=environ.get("REQUEST_METHOD", "GET"),
                headers=headers,
                body=_read_body(environ),
            )
            payload = self.verifier.authenticate_and_decode_sync(request)
            state = WebhookState(signed=True, payload=payload)
        except WebhookError as e:
            state = WebhookState(signed=True, error=e)

        environ[ENVIRON_KEY] = state

        if self.require_verified and not state.verified:
            return self._error_response(
                start_response,
                HTTPStatus(state.error.status_code),
                str(state.error),
            )

        def custom_start_response(
            status: str,
            response_headers: list[tuple[str, str]],
            exc_info: Any = None,
        ) -> Any:
            decision = "allow" if state.verified else "observe"
            response_headers.append((DECISION_HEADER, decision))
            return start_response(status, response_headers, exc_info)

        return self.app(environ, custom_start_response)

    def _error_response(
        self,
        start_response: Callable[..., Any],
        status: HTTPStatus,
        error: str,
    ) -> Iterable[bytes]:
        """Return a JSON error response."""
        body = json.dumps({"error": error}).encode("utf-8")
        start_response(
            f"{status.value} {status.phrase}",
            [
                ("Content-Type", "application/json"),
                ("Content-Length", str(len(body))),
                (DECISION_HEADER, "deny"),
            ],
        )
        return [body]
