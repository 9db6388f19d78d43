"""
FastAPI demo receiving Travis CI webhook notifications.

Usage:
    # Install dependencies
    pip install -e ".[fastapi]"

    # Run the server
    uvicorn examples.fastapi_demo:app --port 8009 --reload

    # Or directly
    python examples/fastapi_demo.py

Point a Travis CI build at it in .travis.yml:
    notifications:
      webhooks: https://ci-hooks.example.com/travis

Environment variables:
    TRAVIS_CONFIG_URL - Override the config URL (default: https://api.travis-ci.org/config)
                        Use https://api.travis-ci.com/config for travis-ci.com
    TRAVIS_REQUIRE_VERIFIED - Set to "false" to only observe verification (default: true)
"""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

# Import from installed package
from travis_webhook import Color, Payload, TravisWebhookASGIMiddleware

# Configuration from environment
CONFIG_URL = os.getenv("TRAVIS_CONFIG_URL", "https://api.travis-ci.org/config")
REQUIRE_VERIFIED = os.getenv("TRAVIS_REQUIRE_VERIFIED", "true").lower() == "true"

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger("fastapi_demo")

app = FastAPI(
    title="Travis CI Webhook Demo",
    description="Receives signed Travis CI notifications",
    version="0.1.0",
)

# Only the webhook route is checked
app.add_middleware(
    TravisWebhookASGIMiddleware,
    config_url=CONFIG_URL,
    require_verified=REQUIRE_VERIFIED,
    paths=["/travis"],
)


def build_color(payload: Payload) -> Color:
    """Pick the UI color for a build."""
    if payload.passed() or payload.fixed():
        return Color.PASSED
    if payload.canceled():
        return Color.CANCEL
    if payload.pending():
        return Color.IN_PROGRESS
    return Color.FAIL


@app.post("/travis")
async def travis(request: Request):
    """
    Travis CI notification endpoint.

    In require mode, unverified requests are rejected by the middleware
    before reaching this handler.
    """
    state = getattr(request.state, "travis", None)

    if not state:
        return JSONResponse(
            status_code=500,
            content={"error": "Middleware not configured"},
        )

    if not state.verified:
        return {
            "signed": state.signed,
            "verified": False,
            "error": str(state.error) if state.error else "No signature provided",
        }

    payload = state.payload
    logger.info(
        "Build #%s of %s on %s: %s",
        payload.number,
        payload.repository.name if payload.repository else "?",
        payload.branch,
        payload.status_message or payload.result_message,
    )

    return {
        "verified": True,
        "build": payload.number,
        "type": payload.type,
        "color": f"#{build_color(payload):06X}",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8009)
