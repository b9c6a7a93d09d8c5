"""Form data containers produced by the form parsers."""

from collections.abc import AsyncIterator, Callable, Mapping
from types import MappingProxyType

from robyn_essentials.core.exceptions import DoubleConsumptionError
from robyn_essentials.models.core import ConsumeState

DEFAULT_FILE_CONTENT_TYPE = "text/plain"


class UploadedFile:
    """A file uploaded through a multipart form.

    The bytes live on a forward-only source, so they can be read exactly once,
    either with ``read_as_bytes`` or by iterating ``open_read``. Check ``state``
    before reading when the handle may already have been used.
    """

    __slots__ = ("name", "content_type", "_source", "_on_close", "_state")

    def __init__(
        self,
        name: str,
        content_type: str | None,
        source: AsyncIterator[bytes],
        on_close: Callable[[], None] | None = None,
    ) -> None:
        self.name = name
        self.content_type = content_type or DEFAULT_FILE_CONTENT_TYPE
        self._source = source
        self._on_close = on_close
        self._state = ConsumeState.UNREAD

    @property
    def state(self) -> ConsumeState:
        return self._state

    def _claim(self) -> None:
        if self._state is not ConsumeState.UNREAD:
            raise DoubleConsumptionError(
                f"Uploaded file {self.name!r} was already read ({self._state}); "
                "read_as_bytes and open_read can be used only once per file"
            )
        self._state = ConsumeState.READING

    async def read_as_bytes(self) -> bytes:
        """Read the whole file into memory."""
        self._claim()
        try:
            return b"".join([chunk async for chunk in self._source])
        finally:
            self._finish()

    def open_read(self) -> AsyncIterator[bytes]:
        """Return the file content as a stream of byte chunks."""
        self._claim()
        return self._stream()

    async def _stream(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._source:
                yield chunk
        finally:
            self._finish()

    def _finish(self) -> None:
        self._state = ConsumeState.CONSUMED
        self.close()

    def close(self) -> None:
        """Release the backing storage; the handle cannot be read afterwards."""
        if self._state is ConsumeState.UNREAD:
            self._state = ConsumeState.CONSUMED
        if self._on_close is not None:
            on_close, self._on_close = self._on_close, None
            on_close()

    def __repr__(self) -> str:
        return f"UploadedFile(name={self.name!r}, content_type={self.content_type!r}, state={self._state})"


class FormData:
    """The fields and files of a received form, read-only once built."""

    __slots__ = ("_fields", "_files")

    def __init__(
        self,
        fields: Mapping[str, str] | None = None,
        files: Mapping[str, UploadedFile] | None = None,
    ) -> None:
        self._fields = MappingProxyType(dict(fields or {}))
        self._files = MappingProxyType(dict(files or {}))

    @property
    def fields(self) -> Mapping[str, str]:
        """The text fields that were submitted in the form."""
        return self._fields

    @property
    def files(self) -> Mapping[str, UploadedFile]:
        """The files that were uploaded in the form."""
        return self._files

    def close(self) -> None:
        for uploaded in self._files.values():
            uploaded.close()

    def __enter__(self) -> "FormData":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"FormData(fields={dict(self._fields)!r}, files={dict(self._files)!r})"
