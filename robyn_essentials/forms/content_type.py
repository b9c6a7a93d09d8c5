"""Content-Type classification for request bodies."""

from python_multipart.multipart import parse_options_header

from robyn_essentials.models.core import ContentKind

_KINDS_BY_MIME = {
    ContentKind.URL_ENCODED.value: ContentKind.URL_ENCODED,
    ContentKind.MULTIPART.value: ContentKind.MULTIPART,
    ContentKind.JSON.value: ContentKind.JSON,
}


def media_type(value: str | None) -> str:
    """Return the lower-cased MIME type of a Content-Type value, without parameters."""
    mime, _ = parse_options_header(value)
    return mime.decode("latin-1").strip().lower()


def media_type_options(value: str | None) -> dict[str, str]:
    """Return the parameters of a Content-Type value, e.g. ``boundary`` or ``charset``."""
    _, options = parse_options_header(value)
    return {key.decode("latin-1").lower(): val.decode("latin-1") for key, val in options.items()}


def classify_content_type(value: str | None) -> ContentKind:
    """Classify a Content-Type header value; a missing header is unsupported."""
    if not value:
        return ContentKind.UNSUPPORTED
    return _KINDS_BY_MIME.get(media_type(value), ContentKind.UNSUPPORTED)


def is_json_content_type(value: str | None) -> bool:
    return value is not None and ContentKind.JSON.value in value
