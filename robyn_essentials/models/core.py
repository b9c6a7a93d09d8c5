"""Core models for request/response handling."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Self

from pydantic import BaseModel, ConfigDict

from robyn_essentials.core.exceptions import UnsupportedMethodError

HeaderValues = str | Iterable[str]


class ContentKind(StrEnum):
    """Body content type classification for request parsing."""

    URL_ENCODED = "application/x-www-form-urlencoded"
    MULTIPART = "multipart/form-data"
    JSON = "application/json"
    UNSUPPORTED = "unsupported"


class HttpMethod(StrEnum):
    """Request methods understood by the helpers."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    HEAD = "HEAD"

    @classmethod
    def resolve(cls, method: str) -> "HttpMethod":
        """Map a raw method string to a member, raising UnsupportedMethodError otherwise."""
        try:
            return cls(method.strip().upper())
        except ValueError:
            raise UnsupportedMethodError(method, (m.value for m in cls)) from None


class ConsumeState(StrEnum):
    """Lifecycle of a single-use byte source."""

    UNREAD = "unread"
    READING = "reading"
    CONSUMED = "consumed"


class ConnectionInfo(BaseModel):
    """Transport-level connection metadata for a request."""

    model_config = ConfigDict(frozen=True)

    remote_address: str
    remote_port: int | None = None
    local_address: str | None = None
    local_port: int | None = None


def normalize_headers(headers: Mapping[str, HeaderValues] | None) -> dict[str, tuple[str, ...]]:
    """Lower-case header names and turn every value into a tuple of strings."""
    normalized: dict[str, tuple[str, ...]] = {}
    for name, value in (headers or {}).items():
        normalized[name.lower()] = (value,) if isinstance(value, str) else tuple(value)
    return normalized


@dataclass(frozen=True, slots=True)
class Response:
    """Transport independent HTTP response.

    Header names are stored lower-cased; every header maps to one or more values.
    """

    status_code: int = 200
    body: str | bytes | None = None
    headers: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(normalize_headers(self.headers)))

    @classmethod
    def ok(cls, body: str | bytes | None = None, headers: Mapping[str, HeaderValues] | None = None) -> Self:
        return cls(status_code=200, body=body, headers=normalize_headers(headers))

    def header(self, name: str) -> str | None:
        """Return the header values joined by a comma, or None when missing."""
        values = self.headers.get(name.lower())
        return ", ".join(values) if values is not None else None

    def change(
        self,
        headers: Mapping[str, HeaderValues] | None = None,
        body: str | bytes | None = None,
    ) -> Self:
        """Derive a new response; given headers replace existing ones with the same name."""
        merged = {**self.headers, **normalize_headers(headers)}
        return type(self)(
            status_code=self.status_code,
            body=self.body if body is None else body,
            headers=merged,
        )
