"""
ASGI middleware for Travis CI webhook verification (FastAPI/Starlette).
"""

from __future__ import annotations

from typing import Any, Callable, Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..errors import WebhookError
from ..headers import has_signature_header
from ..keys import DEFAULT_CONFIG_URL
from ..models import WebhookRequest, WebhookState
from ..verifier import WebhookVerifier

DECISION_HEADER = "X-Travis-Webhook-Decision"


class TravisWebhookASGIMiddleware(BaseHTTPMiddleware):
    """
    ASGI middleware for Travis CI webhook verification.

    Attaches verification state to `request.state.travis` with:
    - signed: bool - whether request had a Signature header
    - payload: Payload | None - decoded notification if verified
    - error: WebhookError | None - why verification failed

    Args:
        app: ASGI application
        config_url: URL of the Travis CI configuration document
        require_verified: If True, reject unsigned or unverified requests.
            If False (default), operate in observe mode - attach state but allow all.
        timeout_s: Key fetch timeout in seconds
        paths: Request paths to check. Default: every path.

    Example (FastAPI):
        >>> from fastapi import FastAPI, Request
        >>> from travis_webhook import TravisWebhookASGIMiddleware
        >>>
        >>> app = FastAPI()
        >>> app.add_middleware(TravisWebhookASGIMiddleware, paths=["/travis"])
        >>>
        >>> @app.post("/travis")
        >>> async def travis(request: Request):
        ...     state = request.state.travis
        ...     if state.verified and state.payload.passed():
        ...         return {"build": state.payload.number}
        ...     return {"error": str(state.error)}
    """

    def __init__(
        self,
        app: Any,
        config_url: str = DEFAULT_CONFIG_URL,
        require_verified: bool = False,
        timeout_s: float | None = None,
        paths: Iterable[str] | None = None,
    ):
        super().__init__(app)
        self.config_url = config_url
        self.require_verified = require_verified
        self.paths = frozenset(paths) if paths is not None else None
        self.verifier = WebhookVerifier(config_url=config_url, timeout_s=timeout_s)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        if self.paths is not None and request.url.path not in self.paths:
            return await call_next(request)

        # First value wins when a header is repeated
        headers: dict[str, str] = {}
        for key, value in request.headers.items():
            headers.setdefault(key.lower(), value)

        if not has_signature_header(headers):
            request.state.travis = WebhookState(signed=False)

            if self.require_verified:
                return JSONResponse(
                    status_code=401,
                    content={"error": "missing Signature header"},
                    headers={DECISION_HEADER: "deny"},
                )

            return await call_next(request)

        try:
            webhook_request = WebhookRequest(
                method=request.method,
                headers=headers,
                body=await request.body(),
            )
            payload = await self.verifier.authenticate_and_decode(webhook_request)
            state = WebhookState(signed=True, payload=payload)
        except WebhookError as e:
            state = WebhookState(signed=True, error=e)

        request.state.travis = state

        if self.require_verified and not state.verified:
            return JSONResponse(
                status_code=state.error.status_code,
                content={"error": str(state.error)},
                headers={DECISION_HEADER: "deny"},
            )

        response = await call_next(request)
        response.headers[DECISION_HEADER] = "allow" if state.verified else "observe"
        return response
