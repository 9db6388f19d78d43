"""
Data models for Travis CI webhook notifications.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Any, Mapping
from urllib.parse import parse_qs

from .errors import PayloadDecodeError, WebhookError
from .headers import get_header


class Color(IntEnum):
    """UI colors matching the build states shown by Travis CI."""

    PASSED = 0x39AA56
    FAIL = 0xDB4545
    IN_PROGRESS = 0xEDDE3F
    CANCEL = 0x9D9D9D


def _get(data: Mapping[str, Any], key: str, kind: type) -> Any:
    value = data.get(key)
    if value is None:
        return None
    if kind is int:
        valid = isinstance(value, int) and not isinstance(value, bool)
    else:
        valid = isinstance(value, kind)
    if not valid:
        raise PayloadDecodeError("cannot decode payload")
    return value


# RFC 3339 date-time; fractions beyond microseconds are truncated
_TIMESTAMP = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})"
    r"(?:\.(\d{1,9}))?([Zz]|[+-]\d{2}:\d{2})\Z"
)


def _parse_timestamp(value: str) -> datetime:
    match = _TIMESTAMP.match(value)
    if match is None:
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction = match.group(7) or ""
    microsecond = int(fraction[:6].ljust(6, "0")) if fraction else 0

    offset = match.group(8)
    if offset in ("Z", "z"):
        tz = timezone.utc
    else:
        delta = timedelta(hours=int(offset[1:3]), minutes=int(offset[4:6]))
        tz = timezone(-delta if offset[0] == "-" else delta)
    return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tz)


def _get_timestamp(data: Mapping[str, Any], key: str) -> datetime | None:
    value = _get(data, key, str)
    if value is None:
        return None
    try:
        return _parse_timestamp(value)
    except ValueError as e:
        raise PayloadDecodeError("cannot decode payload") from e


def _format_timestamp(value: datetime) -> str:
    """Format like RFC 3339 with trailing fraction zeros dropped and Z for UTC."""
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += f".{value.microsecond:06d}".rstrip("0")

    offset = value.utcoffset()
    if offset is None:
        return text
    seconds = int(offset.total_seconds())
    if seconds == 0:
        return text + "Z"
    sign = "-" if seconds < 0 else "+"
    seconds = abs(seconds)
    return f"{text}{sign}{seconds // 3600:02d}:{seconds % 3600 // 60:02d}"


def _populated(obj: Any) -> dict[str, Any]:
    """Encode the non-None fields of a model back to their wire form."""
    result: dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        if isinstance(value, datetime):
            value = _format_timestamp(value)
        elif isinstance(value, (Config, Repository)):
            value = value.to_dict()
        result[f.name] = value
    return result


@dataclass
class Config:
    """
    Build environment of the notification.

    Attributes:
        sudo: Whether the build ran with sudo enabled
        dist: Distribution name (trusty, xenial, ...)
        language: Build language
    """
    sudo: bool | None = None
    dist: str | None = None
    language: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Config:
        return cls(
            sudo=_get(data, "sudo", bool),
            dist=_get(data, "dist", str),
            language=_get(data, "language", str),
        )

    def to_dict(self) -> dict[str, Any]:
        return _populated(self)


@dataclass
class Repository:
    """
    Repository the build belongs to.

    Attributes:
        id: Travis CI repository id
        name: Repository name
        owner_name: Owner (user or organization) name
        url: Repository URL
    """
    id: int | None = None
    name: str | None = None
    owner_name: str | None = None
    url: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Repository:
        return cls(
            id=_get(data, "id", int),
            name=_get(data, "name", str),
            owner_name=_get(data, "owner_name", str),
            url=_get(data, "url", str),
        )

    def to_dict(self) -> dict[str, Any]:
        return _populated(self)


@dataclass
class Payload:
    """
    Decoded Travis CI notification.

    Every field is optional; None means the notification did not carry it.
    Field names follow the wire format, including the legacy spellings
    ``commited_at`` and ``commiter_*``. ``status_message`` and
    ``result_message`` carry the same information and either may be set.
    """
    id: int | None = None
    number: str | None = None
    config: Config | None = None
    type: str | None = None
    state: str | None = None
    status: int | None = None
    result: int | None = None
    status_message: str | None = None
    result_message: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration: int | None = None
    build_url: str | None = None
    commit_id: int | None = None
    commit: str | None = None
    base_commit: str | None = None
    head_commit: str | None = None
    branch: str | None = None
    message: str | None = None
    compare_url: str | None = None
    commited_at: datetime | None = None
    author_name: str | None = None
    author_email: str | None = None
    commiter_name: str | None = None
    commiter_email: str | None = None
    pull_request: int | None = None
    pull_request_number: int | None = None
    pull_request_title: str | None = None
    tag: str | None = None
    repository: Repository | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Payload:
        """
        Build a Payload from a decoded JSON object.

        Unknown keys are ignored. Nested config and repository objects are
        always freshly built.

        Raises:
            PayloadDecodeError: If a field has the wrong JSON type
        """
        config = _get(data, "config", dict)
        repository = _get(data, "repository", dict)
        return cls(
            id=_get(data, "id", int),
            number=_get(data, "number", str),
            config=Config.from_dict(config) if config is not None else None,
            type=_get(data, "type", str),
            state=_get(data, "state", str),
            status=_get(data, "status", int),
            result=_get(data, "result", int),
            status_message=_get(data, "status_message", str),
            result_message=_get(data, "result_message", str),
            started_at=_get_timestamp(data, "started_at"),
            finished_at=_get_timestamp(data, "finished_at"),
            duration=_get(data, "duration", int),
            build_url=_get(data, "build_url", str),
            commit_id=_get(data, "commit_id", int),
            commit=_get(data, "commit", str),
            base_commit=_get(data, "base_commit", str),
            head_commit=_get(data, "head_commit", str),
            branch=_get(data, "branch", str),
            message=_get(data, "message", str),
            compare_url=_get(data, "compare_url", str),
            commited_at=_get_timestamp(data, "commited_at"),
            author_name=_get(data, "author_name", str),
            author_email=_get(data, "author_email", str),
            commiter_name=_get(data, "commiter_name", str),
            commiter_email=_get(data, "commiter_email", str),
            pull_request=_get(data, "pull_request", int),
            pull_request_number=_get(data, "pull_request_number", int),
            pull_request_title=_get(data, "pull_request_title", str),
            tag=_get(data, "tag", str),
            repository=(
                Repository.from_dict(repository) if repository is not None else None
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Encode the populated fields back to their JSON form."""
        return _populated(self)

    def _has_status(self, message: str) -> bool:
        return self.status_message == message or self.result_message == message

    def pending(self) -> bool:
        """A build has been requested."""
        return self._has_status("Pending")

    def passed(self) -> bool:
        """The build completed successfully."""
        return self._has_status("Passed")

    def fixed(self) -> bool:
        """The build passed after a previously failed build."""
        return self._has_status("Fixed")

    def broken(self) -> bool:
        """The build failed after a previously successful build."""
        return self._has_status("Broken")

    def failed(self) -> bool:
        """The first build for a new branch failed."""
        return self._has_status("Failed")

    def still_failing(self) -> bool:
        """The build failed after a previously failed build."""
        return self._has_status("Still Failing")

    def canceled(self) -> bool:
        return self._has_status("Canceled")

    def errored(self) -> bool:
        return self._has_status("Errored")

    def is_pull_request(self) -> bool:
        """The event was caused by a pull request."""
        return self.type == "pull_request"

    def is_push(self) -> bool:
        return self.type == "push"

    def is_cron(self) -> bool:
        return self.type == "cron"

    def is_api(self) -> bool:
        """The event was triggered through the API."""
        return self.type == "api"


@dataclass
class WebhookRequest:
    """
    Inbound request to be verified.

    Attributes:
        method: HTTP method (POST for genuine notifications)
        headers: Request headers (looked up case-insensitively)
        body: URL-encoded form body
    """
    method: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | str = b""

    def header(self, name: str) -> str:
        """Return a header value, or "" when absent."""
        return get_header(self.headers, name)

    def form_bytes(self, name: str) -> bytes:
        """Return the first value of a form field as raw bytes, or b"" when absent."""
        body = self.body
        if isinstance(body, str):
            body = body.encode("utf-8")
        # latin-1 maps every byte to one code point, so percent-decoded
        # values convert back to the exact bytes sent
        values = parse_qs(
            body.decode("latin-1"), keep_blank_values=True, encoding="latin-1"
        ).get(name)
        return values[0].encode("latin-1") if values else b""

    def form_value(self, name: str) -> str:
        """Return the first value of a form field, or "" when absent."""
        return self.form_bytes(name).decode("utf-8", errors="replace")


@dataclass
class WebhookState:
    """
    Verification state attached to requests by the middleware.

    Attributes:
        signed: Whether the request carried a Signature header
        payload: Decoded notification if verification succeeded
        error: Failure raised by the verification pipeline, if any
    """
    signed: bool
    payload: Payload | None = None
    error: WebhookError | None = None

    @property
    def verified(self) -> bool:
        return self.payload is not None and self.error is None
