"""Form data parsing for URL-encoded and multipart request bodies."""

from collections.abc import AsyncIterator
from tempfile import SpooledTemporaryFile
from urllib.parse import parse_qsl

from robyn_essentials.core.exceptions import ClassificationMismatchError, StreamDecodeError
from robyn_essentials.core.logger import LogIcon, logger
from robyn_essentials.core.request import RequestReader, read_text
from robyn_essentials.core.settings import settings as st
from robyn_essentials.forms.content_type import classify_content_type, media_type
from robyn_essentials.forms.multipart import MultipartDecoder, MultipartPart, extract_boundary
from robyn_essentials.models.core import ContentKind
from robyn_essentials.models.forms import FormData, UploadedFile

FORM_CONTENT_KINDS = (ContentKind.URL_ENCODED, ContentKind.MULTIPART)


def parse_urlencoded(body: str) -> FormData:
    """Parse an ``application/x-www-form-urlencoded`` body; the last duplicate key wins."""
    return FormData(fields=dict(parse_qsl(body, keep_blank_values=True)), files={})


async def _iter_spool(spool: SpooledTemporaryFile, chunk_size: int) -> AsyncIterator[bytes]:
    try:
        while chunk := spool.read(chunk_size):
            yield chunk
    finally:
        spool.close()


async def spool_part(part: MultipartPart, spool_max_size: int, chunk_size: int) -> UploadedFile:
    """Copy a file part out of the body stream so the decoder can move on."""
    spool = SpooledTemporaryFile(max_size=spool_max_size)
    try:
        async for chunk in part.iter_bytes():
            spool.write(chunk)
        spool.seek(0)
    except BaseException:
        spool.close()
        raise
    return UploadedFile(part.filename or "", part.content_type, _iter_spool(spool, chunk_size), on_close=spool.close)


async def assemble_multipart(
    content_type: str,
    stream: AsyncIterator[bytes],
    *,
    spool_max_size: int | None = None,
    chunk_size: int | None = None,
) -> FormData:
    """Decode a multipart body into text fields and uploaded files.

    Parts with a ``filename`` parameter, even an empty one, become files; all
    other parts are buffered and decoded as UTF-8 text fields. Parts without a
    usable ``form-data`` Content-Disposition are skipped.
    """
    decoder = MultipartDecoder(extract_boundary(content_type), stream)
    spool_max_size = st.SPOOL_MAX_MEMORY_SIZE if spool_max_size is None else spool_max_size
    chunk_size = chunk_size or st.FILE_CHUNK_SIZE

    fields: dict[str, str] = {}
    files: dict[str, UploadedFile] = {}
    try:
        async for part in decoder:
            if not part.is_form_data:
                logger.debug("Skipping part without form-data disposition", icon=LogIcon.WARNING)
                continue

            if part.is_file:
                if previous := files.get(part.name):
                    previous.close()
                files[part.name] = await spool_part(part, spool_max_size, chunk_size)
                continue

            raw = await part.read()
            try:
                fields[part.name] = raw.decode("utf-8")
            except UnicodeDecodeError as ex:
                raise StreamDecodeError(f"Form field {part.name!r} is not valid UTF-8") from ex
    except BaseException:
        for uploaded in files.values():
            uploaded.close()
        raise

    logger.debug("Multipart form assembled", icon=LogIcon.UPLOAD, fields=len(fields), files=len(files))
    return FormData(fields=fields, files=files)


async def read_form_data(request: RequestReader) -> FormData:
    """Parse the request body as form data, URL-encoded or multipart."""
    content_type = request.header("content-type")
    match classify_content_type(content_type):
        case ContentKind.URL_ENCODED:
            return parse_urlencoded(await read_text(request))
        case ContentKind.MULTIPART:
            return await assemble_multipart(content_type, request.stream())
        case _:
            raise ClassificationMismatchError(
                (kind.value for kind in FORM_CONTENT_KINDS),
                media_type(content_type) if content_type else None,
            )
