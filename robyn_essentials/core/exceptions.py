"""Error taxonomy for request body parsing and method resolution."""

from collections.abc import Iterable


class EssentialsError(Exception):
    """Base error class for robyn-essentials."""


class ClassificationMismatchError(EssentialsError, ValueError):
    """The request content type does not match the requested parse path."""

    def __init__(self, expected: Iterable[str], actual: str | None) -> None:
        self.expected = tuple(expected)
        self.actual = actual or ""
        super().__init__(
            "Body could not be parsed due to an invalid MIME type. "
            f"Expected MIME type: {' OR '.join(repr(e) for e in self.expected)}. "
            f"Actual MIME type: {self.actual!r}"
        )


class MalformedBoundaryError(EssentialsError, ValueError):
    """A multipart content type without a ``boundary`` parameter."""


class StreamDecodeError(EssentialsError):
    """The body stream failed or ended before the body could be decoded.

    The stream cannot be rewound, so the caller must not retry the read.
    """


class DoubleConsumptionError(EssentialsError, RuntimeError):
    """A single-use byte source was read a second time."""


class UnsupportedMethodError(EssentialsError, ValueError):
    """A request method outside the supported set."""

    def __init__(self, method: str, supported: Iterable[str]) -> None:
        self.method = method
        self.supported = tuple(supported)
        super().__init__(
            f"Unsupported HTTP method: {method}. "
            f"The following methods are supported: {', '.join(self.supported)}."
        )


class InvalidJsonError(EssentialsError, ValueError):
    """The body declared JSON but could not be decoded as JSON."""


class LoggerError(EssentialsError):
    """A log call passed an icon that is not a LogIcon member."""
