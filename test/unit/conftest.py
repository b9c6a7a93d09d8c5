"""Test fixtures for robyn-essentials unit tests."""

from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field
from typing import Any

import pytest

from robyn_essentials.models.core import Response

BOUNDARY = "----TestFormBoundary7MA4YWxkTrZu0gW"
MULTIPART_CONTENT_TYPE = f"multipart/form-data; boundary={BOUNDARY}"


# -----------------------------------------------------------------------------
# Mock classes for Robyn Request
# -----------------------------------------------------------------------------


@dataclass
class MockHeaders:
    """Mock Headers object for Robyn Request; keys are stored lower-cased."""

    _data: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._data = {key.lower(): value for key, value in self._data.items()}

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._data.get(key.lower(), default)

    def set(self, key: str, value: str) -> None:
        self._data[key.lower()] = value

    def __getitem__(self, key: str) -> str:
        return self._data[key.lower()]

    def __setitem__(self, key: str, value: str) -> None:
        self._data[key.lower()] = value


@dataclass
class MockRequest:
    """Mock Request object for Robyn."""

    body: str | bytes = ""
    headers: MockHeaders = field(default_factory=MockHeaders)
    method: str = "GET"
    path: str = "/"
    ip_addr: str | None = None


# -----------------------------------------------------------------------------
# RequestReader double with a chunked body
# -----------------------------------------------------------------------------


@dataclass
class StubRequest:
    """RequestReader feeding the body in chunks, optionally failing midway."""

    headers: dict[str, str] = field(default_factory=dict)
    chunks: list[bytes] = field(default_factory=list)
    method: str = "POST"
    extra: dict[str, Any] = field(default_factory=dict)
    fail_with: Exception | None = None
    reads: int = 0

    def header(self, name: str) -> str | None:
        return {key.lower(): value for key, value in self.headers.items()}.get(name.lower())

    def stream(self) -> AsyncIterator[bytes]:
        self.reads += 1
        return self._chunks()

    async def _chunks(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            yield chunk
        if self.fail_with is not None:
            raise self.fail_with

    def context(self, key: str) -> Any | None:
        return self.extra.get(key)


def split_chunks(data: bytes, size: int) -> list[bytes]:
    return [data[i : i + size] for i in range(0, len(data), size)] or [b""]


async def stream_of(data: bytes, size: int = 7) -> AsyncIterator[bytes]:
    for chunk in split_chunks(data, size):
        yield chunk


def multipart_body(parts: Iterable[tuple[dict[str, str], bytes]], boundary: str = BOUNDARY) -> bytes:
    """Build a multipart body from (headers, payload) pairs."""
    body = b""
    for headers, payload in parts:
        body += f"--{boundary}\r\n".encode()
        for name, value in headers.items():
            body += f"{name}: {value}\r\n".encode()
        body += b"\r\n" + payload + b"\r\n"
    return body + f"--{boundary}--\r\n".encode()


def field_part(name: str, value: str) -> tuple[dict[str, str], bytes]:
    return {"Content-Disposition": f'form-data; name="{name}"'}, value.encode("utf-8")


def file_part(
    name: str, filename: str, payload: bytes, content_type: str | None = "application/octet-stream"
) -> tuple[dict[str, str], bytes]:
    headers = {"Content-Disposition": f'form-data; name="{name}"; filename="{filename}"'}
    if content_type is not None:
        headers["Content-Type"] = content_type
    return headers, payload


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def make_request():
    """Factory fixture to create chunked RequestReader doubles."""

    def _make(
        body: bytes = b"",
        content_type: str | None = None,
        method: str = "POST",
        chunk_size: int = 7,
        headers: dict[str, str] | None = None,
        **kwargs,
    ) -> StubRequest:
        all_headers = dict(headers or {})
        if content_type is not None:
            all_headers["content-type"] = content_type
        return StubRequest(headers=all_headers, chunks=split_chunks(body, chunk_size), method=method, **kwargs)

    return _make


@pytest.fixture
def make_mock_request():
    """Factory fixture to create mock Robyn requests."""

    def _make(body: str | bytes = "", headers: dict | None = None, method: str = "GET", **kwargs) -> MockRequest:
        return MockRequest(body=body, headers=MockHeaders(dict(headers or {})), method=method, **kwargs)

    return _make


@pytest.fixture
def counting_handler():
    """Downstream handler that counts its calls and answers with a fixed response."""

    class CountingHandler:
        def __init__(self) -> None:
            self.calls = 0
            self.response = Response(status_code=200, body="downstream", headers={"X-Downstream": "yes"})

        async def __call__(self, request) -> Response:
            self.calls += 1
            return self.response

    return CountingHandler()
