"""structlog setup shared by the decoders, the middlewares and the demo app."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum

import orjson
import structlog
from asgi_correlation_id import correlation_id
from beartype import beartype

from robyn_essentials.core.exceptions import LoggerError
from robyn_essentials.core.settings import settings

MAX_EVENT_LENGTH = 80


class LogIcon(StrEnum):
    """Icons prefixed to events in DEBUG mode."""

    DEFAULT = "📋"
    WARNING = "⚠️"
    START = "🚀"
    ADAPTER = "🔌"
    STREAMING = "📡"
    FILE = "📄"
    UPLOAD = "📤"
    VALIDATION = "✓"
    SECURITY = "🔒"
    FORBIDDEN = "🚫"


@dataclass
class LoggerConfig:
    debug: bool = field(default_factory=lambda: settings.DEBUG)
    level: str = field(default_factory=lambda: settings.LOG_LEVEL)


def add_correlation_id(logger, method_name: str, event_dict: dict) -> dict:
    """Tag the event with the request id set by the router, if any."""
    request_id = correlation_id.get()
    if request_id:
        event_dict["correlation_id"] = request_id
    return event_dict


class EventFormatter:
    """Uppercase and truncate event messages; in DEBUG mode prefix the LogIcon.

    Every call may pass ``icon=LogIcon.X``; anything that is not a LogIcon value
    raises LoggerError.
    """

    def __init__(self, debug: bool) -> None:
        self.debug = debug

    @beartype
    def __call__(self, logger, name: str, event_dict: dict) -> dict:
        try:
            icon = LogIcon(event_dict.pop("icon", LogIcon.DEFAULT))
        except ValueError as err:
            raise LoggerError("Wrong icon chosen, please choose a LogIcon member") from err
        event = str(event_dict.get("event", ""))[:MAX_EVENT_LENGTH].upper()
        event_dict["event"] = f"{icon.value} {event}" if self.debug else event
        return event_dict


def render_pipe_separated(logger, name: str, event_dict: dict) -> str:
    """timestamp | LEVEL | EVENT | key=value ... | file:line"""
    timestamp = event_dict.pop("timestamp", "")
    level = event_dict.pop("level", "info").upper()
    event = event_dict.pop("event", "")
    filename = event_dict.pop("filename", "")
    lineno = event_dict.pop("lineno", "")

    extra = " | ".join(f"{key}={value}" for key, value in event_dict.items())
    location = f"{filename}:{lineno}" if filename else ""
    return " | ".join(filter(None, [timestamp, level, event, extra, location]))


def setup_logging(config: LoggerConfig) -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
            additional_ignores=["logger"],
        ),
        EventFormatter(debug=config.debug),
        add_correlation_id,
    ]

    if config.debug:
        processors.append(render_pipe_separated)
    else:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(serializer=orjson.dumps),
        ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(config.level.upper())),
        cache_logger_on_first_use=True,
    )


setup_logging(LoggerConfig())

logger = structlog.get_logger()
