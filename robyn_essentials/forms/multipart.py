"""Pull-mode multipart/form-data decoder.

``python_multipart.MultipartParser`` is a push parser: it is fed chunks and
reports what it found through callbacks. ``MultipartDecoder`` turns it around.
Callbacks only append events to a queue, and the queue is refilled from the
body stream one chunk at a time when the consumer asks for the next part or
the next chunk of the current part. At most one chunk of the body is held
in memory, whatever the upload size.
"""

from collections import deque
from collections.abc import AsyncIterator
from enum import StrEnum

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from robyn_essentials.core.exceptions import MalformedBoundaryError, StreamDecodeError
from robyn_essentials.core.logger import LogIcon, logger
from robyn_essentials.forms.content_type import media_type_options
from robyn_essentials.models.forms import DEFAULT_FILE_CONTENT_TYPE, UploadedFile

FORM_DATA_DISPOSITION = b"form-data"


class PartEvent(StrEnum):
    """Events reported by the push parser, in stream order."""

    PART_BEGIN = "part_begin"
    HEADER_FIELD = "header_field"
    HEADER_VALUE = "header_value"
    HEADER_END = "header_end"
    HEADERS_FINISHED = "headers_finished"
    PART_DATA = "part_data"
    PART_END = "part_end"
    END = "end"


def extract_boundary(content_type: str | None) -> bytes:
    """Return the ``boundary`` parameter of a multipart Content-Type value."""
    boundary = media_type_options(content_type).get("boundary")
    if not boundary:
        raise MalformedBoundaryError(f"Multipart Content-Type has no boundary parameter: {content_type!r}")
    return boundary.encode("latin-1")


def parse_content_disposition(value: str | None) -> tuple[str, str | None] | None:
    """Return ``(name, filename)`` from a ``form-data`` Content-Disposition.

    None when the header is missing, is not ``form-data`` or has no name.
    A Windows path in ``filename`` is reduced to its last component, as
    ``parse_options_header`` does for uploads from old browsers.
    """
    if not value:
        return None
    disposition, options = parse_options_header(value)
    if disposition.lower() != FORM_DATA_DISPOSITION:
        return None
    params = {key.lower(): val for key, val in options.items()}
    name = params.get(b"name")
    if name is None:
        return None
    filename = params.get(b"filename")
    return (
        name.decode("utf-8", errors="replace"),
        filename.decode("utf-8", errors="replace") if filename is not None else None,
    )


class MultipartPart:
    """One boundary-delimited part; its data can be read once, before the next part."""

    __slots__ = ("headers", "name", "filename", "content_type", "_decoder", "_started", "_done", "_discarded")

    def __init__(self, headers: dict[str, str], decoder: "MultipartDecoder") -> None:
        self.headers = headers
        self.content_type = headers.get("content-type", DEFAULT_FILE_CONTENT_TYPE).strip()
        disposition = parse_content_disposition(headers.get("content-disposition"))
        self.name, self.filename = disposition if disposition else (None, None)
        self._decoder = decoder
        self._started = False
        self._done = False
        self._discarded = False

    @property
    def is_form_data(self) -> bool:
        return self.name is not None

    @property
    def is_file(self) -> bool:
        return self.filename is not None

    def iter_bytes(self) -> AsyncIterator[bytes]:
        """Stream the part body; single pass."""
        if self._started:
            raise StreamDecodeError(f"Data of multipart part {self.name!r} was already read")
        self._started = True
        return self._chunks()

    async def read(self) -> bytes:
        return b"".join([chunk async for chunk in self.iter_bytes()])

    def to_uploaded_file(self) -> UploadedFile:
        """Bind an UploadedFile directly to this part's live stream, without buffering."""
        return UploadedFile(self.filename or "", self.content_type, self.iter_bytes())

    async def _chunks(self) -> AsyncIterator[bytes]:
        while not self._done:
            event, data = await self._decoder._next_event()
            if event is PartEvent.PART_DATA:
                yield data
            elif event is PartEvent.PART_END:
                self._done = True
            else:
                raise StreamDecodeError(f"Unexpected {event} inside multipart part {self.name!r}")
        if self._discarded:
            raise StreamDecodeError(f"Data of multipart part {self.name!r} was discarded when the decoder moved on")

    async def drain(self) -> None:
        """Discard whatever the consumer left unread."""
        self._started = True
        if self._done:
            return
        async for _ in self._chunks():
            pass
        self._discarded = True

    def __repr__(self) -> str:
        return f"MultipartPart(name={self.name!r}, filename={self.filename!r}, content_type={self.content_type!r})"


class MultipartDecoder:
    """Iterate the parts of a multipart body, one at a time.

    Usage::

        async for part in MultipartDecoder(boundary, stream):
            data = await part.read()
    """

    def __init__(self, boundary: bytes | str, stream: AsyncIterator[bytes]) -> None:
        self._stream = aiter(stream)
        self._events: deque[tuple[PartEvent, bytes]] = deque()
        self._parser = MultipartParser(boundary, callbacks=self._callbacks())
        self._bytes_read = 0
        self._used = False

    def _callbacks(self) -> dict:
        def notify(event: PartEvent):
            return lambda: self._events.append((event, b""))

        def collect(event: PartEvent):
            return lambda data, start, end: self._events.append((event, bytes(data[start:end])))

        return {
            "on_part_begin": notify(PartEvent.PART_BEGIN),
            "on_header_field": collect(PartEvent.HEADER_FIELD),
            "on_header_value": collect(PartEvent.HEADER_VALUE),
            "on_header_end": notify(PartEvent.HEADER_END),
            "on_headers_finished": notify(PartEvent.HEADERS_FINISHED),
            "on_part_data": collect(PartEvent.PART_DATA),
            "on_part_end": notify(PartEvent.PART_END),
            "on_end": notify(PartEvent.END),
        }

    async def _next_event(self) -> tuple[PartEvent, bytes]:
        while not self._events:
            try:
                chunk = await anext(self._stream)
            except StopAsyncIteration:
                raise StreamDecodeError(
                    f"Multipart body ended after {self._bytes_read} bytes, before the closing boundary"
                ) from None
            except OSError as ex:
                raise StreamDecodeError(f"Multipart body stream failed: {ex}") from ex
            self._bytes_read += len(chunk)
            try:
                self._parser.write(chunk)
            except MultipartParseError as ex:
                raise StreamDecodeError(f"Malformed multipart body: {ex}") from ex
        return self._events.popleft()

    def __aiter__(self) -> AsyncIterator[MultipartPart]:
        if self._used:
            raise StreamDecodeError("Multipart body can be iterated only once")
        self._used = True
        return self._parts()

    async def _parts(self) -> AsyncIterator[MultipartPart]:
        headers: dict[str, str] = {}
        field, value = bytearray(), bytearray()

        while True:
            event, data = await self._next_event()
            match event:
                case PartEvent.PART_BEGIN:
                    headers = {}
                case PartEvent.HEADER_FIELD:
                    field += data
                case PartEvent.HEADER_VALUE:
                    value += data
                case PartEvent.HEADER_END:
                    headers[field.decode("latin-1").strip().lower()] = value.decode("latin-1").strip()
                    field, value = bytearray(), bytearray()
                case PartEvent.HEADERS_FINISHED:
                    part = MultipartPart(headers, self)
                    logger.debug(
                        "Multipart part decoded",
                        icon=LogIcon.STREAMING,
                        part=part.name,
                        filename=part.filename,
                    )
                    yield part
                    await part.drain()
                case PartEvent.END:
                    return
                case _:
                    raise StreamDecodeError(f"Unexpected {event} between multipart parts")
