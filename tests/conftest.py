"""Shared fixtures: signing keys, a mocked Travis CI config endpoint, notifications."""

import base64
import json
from urllib.parse import urlencode

import pytest
import respx
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from travis_webhook import WebhookRequest

CONFIG_URL = "http://localhost:8081/config"

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Trimmed from a real Travis CI notification; key order and spacing are
# kept as sent so signatures cover this exact text.
PAYLOAD_TEXT = json.dumps({
    "id": 1234567,
    "number": "42",
    "config": {"sudo": False, "dist": "trusty", "language": "go"},
    "type": "push",
    "state": "passed",
    "status": 0,
    "result": 0,
    "status_message": "Passed",
    "result_message": "Passed",
    "started_at": "2017-03-07T19:51:46Z",
    "finished_at": "2017-03-07T19:52:32Z",
    "duration": 46,
    "build_url": "https://travis-ci.org/octo/hello/builds/1234567",
    "commit_id": 7654321,
    "commit": "62aae5f70ceee39123ef",
    "base_commit": "",
    "head_commit": "",
    "branch": "master",
    "message": "Fix the build",
    "compare_url": "https://github.com/octo/hello/compare/abc...def",
    "commited_at": "2017-03-07T19:50:39Z",
    "author_name": "Octo Cat",
    "author_email": "octo@example.com",
    "commiter_name": "Octo Cat",
    "commiter_email": "octo@example.com",
    "pull_request": 0,
    "pull_request_number": 0,
    "pull_request_title": "",
    "tag": "",
    "repository": {
        "id": 987654,
        "name": "hello",
        "owner_name": "octo",
        "url": "https://github.com/octo/hello",
    },
}, indent=2)


@pytest.fixture(scope="session")
def private_key():
    """RSA key standing in for Travis CI's signing key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_pem(private_key):
    """PKIX PEM of the signing key's public half."""
    return private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


@pytest.fixture
def config_document(public_pem):
    """Travis CI configuration document carrying the public key."""
    return {
        "config": {
            "host": "travis-ci.org",
            "shorten_host": "trvs.io",
            "assets": {"host": "travis-ci.org"},
            "pusher": {"key": "5df8ac576dcccf4fd076"},
            "github": {"api_url": "https://api.github.com", "scopes": ["read:org"]},
            "notifications": {"webhook": {"public_key": public_pem}},
        }
    }


@pytest.fixture
def mock_travis():
    """Create a respx mock for the Travis CI API."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def config_route(mock_travis, config_document):
    """Config endpoint returning the test public key."""
    return mock_travis.get(CONFIG_URL).respond(json=config_document)


@pytest.fixture
def sign(private_key):
    """Sign a payload the way Travis CI does and return the Signature header value."""
    def _sign(payload: str | bytes) -> str:
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        signature = private_key.sign(
            payload,
            padding.PKCS1v15(),
            hashes.SHA1(),
        )
        return base64.b64encode(signature).decode("ascii")
    return _sign


@pytest.fixture
def signed_request(sign):
    """Build a notification request whose Signature covers payload_text."""
    def _build(
        payload_text: str | bytes = PAYLOAD_TEXT,
        method: str = "POST",
        content_type: str = FORM_CONTENT_TYPE,
        body: str | None = None,
    ) -> WebhookRequest:
        return WebhookRequest(
            method=method,
            headers={
                "Content-Type": content_type,
                "Signature": sign(payload_text),
            },
            body=body if body is not None else urlencode({"payload": payload_text}),
        )
    return _build
