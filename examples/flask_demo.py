"""
Flask demo verifying Travis CI notifications without middleware.

Usage:
    # Install dependencies
    pip install -e ".[flask]"

    # Run the server
    flask --app examples.flask_demo run --port 8010

    # Or directly
    python examples/flask_demo.py

Test with curl:
    # Replay a saved notification without signature check (debug only)
    curl -X POST --data-binary @notification.json http://localhost:8010/replay

Environment variables:
    TRAVIS_CONFIG_URL - Override the config URL (default: https://api.travis-ci.org/config)
"""

import io
import os

from flask import Flask, jsonify, request

# Import from installed package
from travis_webhook import WebhookError, WebhookRequest, WebhookVerifier, decode

# Configuration from environment
CONFIG_URL = os.getenv("TRAVIS_CONFIG_URL", "https://api.travis-ci.org/config")

app = Flask(__name__)

# One verifier per process so the public key is fetched once
verifier = WebhookVerifier(config_url=CONFIG_URL)


def summary(payload):
    return {
        "build": payload.number,
        "branch": payload.branch,
        "commit": payload.commit,
        "passed": payload.passed() or payload.fixed(),
        "pull_request": payload.pull_request_number if payload.is_pull_request() else None,
    }


@app.route("/travis", methods=["POST"])
def travis():
    """Verify and decode a Travis CI notification."""
    webhook_request = WebhookRequest(
        method=request.method,
        headers=dict(request.headers),
        body=request.get_data(),
    )
    try:
        payload = verifier.authenticate_and_decode_sync(webhook_request)
    except WebhookError as e:
        return jsonify({"error": str(e)}), e.status_code

    return jsonify(summary(payload))


@app.route("/replay", methods=["POST"])
def replay():
    """Decode a raw JSON notification. No signature is checked."""
    try:
        payload = decode(io.BytesIO(request.get_data()))
    except WebhookError as e:
        return jsonify({"error": str(e)}), e.status_code

    return jsonify(summary(payload))


@app.route("/health")
def health():
    """Health check endpoint."""
    return jsonify({"status": "ok"})


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8010, debug=True)
