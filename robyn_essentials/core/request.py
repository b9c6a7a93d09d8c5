"""Transport independent request capability and body helpers."""

from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

import orjson

from robyn_essentials.core.exceptions import ClassificationMismatchError, InvalidJsonError, StreamDecodeError
from robyn_essentials.forms.content_type import is_json_content_type, media_type, media_type_options
from robyn_essentials.models.core import ConnectionInfo, ContentKind, HttpMethod

CONNECTION_INFO_KEY = "connection_info"


@runtime_checkable
class RequestReader(Protocol):
    """What the helpers need from an HTTP request."""

    method: str

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        ...

    def stream(self) -> AsyncIterator[bytes]:
        """The body as byte chunks; can be consumed once."""
        ...

    def context(self, key: str) -> Any | None:
        """Transport metadata by key, None when absent."""
        ...


async def read_body(request: RequestReader) -> bytes:
    return b"".join([chunk async for chunk in request.stream()])


async def read_text(request: RequestReader) -> str:
    """Read the body as text, honoring the Content-Type charset (UTF-8 by default)."""
    charset = media_type_options(request.header("content-type")).get("charset", "utf-8")
    body = await read_body(request)
    try:
        return body.decode(charset)
    except (LookupError, UnicodeDecodeError) as ex:
        raise StreamDecodeError(f"Request body is not valid {charset} text: {ex}") from ex


async def read_json(request: RequestReader) -> Any:
    """Decode the body as JSON; the request must declare ``application/json``."""
    content_type = request.header("content-type")
    if not is_json_content_type(content_type):
        raise ClassificationMismatchError(
            (ContentKind.JSON.value,),
            media_type(content_type) if content_type else None,
        )
    try:
        return orjson.loads(await read_body(request))
    except orjson.JSONDecodeError as ex:
        raise InvalidJsonError(f"Request body is not valid JSON: {ex}") from ex


def http_method(request: RequestReader) -> HttpMethod:
    return HttpMethod.resolve(request.method)


def connection_info(request: RequestReader) -> ConnectionInfo | None:
    info = request.context(CONNECTION_INFO_KEY)
    return info if isinstance(info, ConnectionInfo) else None
