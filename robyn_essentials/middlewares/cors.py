"""CORS middleware: origin negotiation, preflight short-circuit and header injection."""

from collections.abc import Callable, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field

from robyn_essentials.core.logger import LogIcon, logger
from robyn_essentials.core.request import RequestReader
from robyn_essentials.middlewares.base import Handler, Middleware
from robyn_essentials.models.core import HttpMethod, Response, normalize_headers

ACCESS_CONTROL_ALLOW_ORIGIN = "Access-Control-Allow-Origin"
ACCESS_CONTROL_EXPOSE_HEADERS = "Access-Control-Expose-Headers"
ACCESS_CONTROL_ALLOW_CREDENTIALS = "Access-Control-Allow-Credentials"
ACCESS_CONTROL_ALLOW_HEADERS = "Access-Control-Allow-Headers"
ACCESS_CONTROL_ALLOW_METHODS = "Access-Control-Allow-Methods"
ACCESS_CONTROL_MAX_AGE = "Access-Control-Max-Age"
VARY = "Vary"
ORIGIN = "Origin"

DEFAULT_ALLOW_HEADERS = (
    "accept",
    "accept-encoding",
    "authorization",
    "content-type",
    "dnt",
    "origin",
    "user-agent",
)
DEFAULT_ALLOW_METHODS = ("DELETE", "GET", "OPTIONS", "PATCH", "POST", "PUT")
DEFAULT_MAX_AGE = 86400

OriginChecker = Callable[[str], bool]


class CorsConfig(BaseModel):
    """Fixed part of the CORS policy, shared by every request.

    Defaults allow credentials, the common request headers and every method
    except HEAD, and let browsers cache preflight answers for 24 hours.
    """

    model_config = ConfigDict(frozen=True)

    allow_headers: tuple[str, ...] = DEFAULT_ALLOW_HEADERS
    allow_methods: tuple[str, ...] = DEFAULT_ALLOW_METHODS
    expose_headers: tuple[str, ...] = ()
    allow_credentials: bool = True
    max_age: int = Field(default=DEFAULT_MAX_AGE, ge=0)

    def default_headers(self) -> dict[str, tuple[str, ...]]:
        headers = {
            ACCESS_CONTROL_EXPOSE_HEADERS: (",".join(self.expose_headers),),
            ACCESS_CONTROL_ALLOW_HEADERS: (",".join(self.allow_headers),),
            ACCESS_CONTROL_ALLOW_METHODS: (",".join(self.allow_methods),),
            ACCESS_CONTROL_MAX_AGE: (str(self.max_age),),
        }
        if self.allow_credentials:
            headers[ACCESS_CONTROL_ALLOW_CREDENTIALS] = ("true",)
        return headers


def origin_allow_all(origin: str) -> bool:
    return True


def origin_one_of(origins: Iterable[str]) -> OriginChecker:
    """Build an origin checker accepting only the given origins."""
    allowed = frozenset(origins)

    def check(origin: str) -> bool:
        return origin in allowed

    return check


def cors_headers(
    added_headers: Mapping[str, str] | None = None,
    origin_checker: OriginChecker = origin_allow_all,
    config: CorsConfig | None = None,
) -> Middleware:
    """Build a middleware adding CORS headers for origins accepted by origin_checker.

    When added_headers carries ``Access-Control-Allow-Origin`` its value is used
    as is together with ``Vary: Origin``; otherwise the request origin is echoed.
    ``OPTIONS`` requests from accepted origins are answered directly.
    """
    config = config or CorsConfig()
    added = {name: (value,) for name, value in (added_headers or {}).items()}
    fixed_origin = next(
        (value for name, value in (added_headers or {}).items() if name.lower() == ACCESS_CONTROL_ALLOW_ORIGIN.lower()),
        None,
    )

    def middleware(handler: Handler) -> Handler:
        async def cors_handler(request: RequestReader) -> Response:
            origin = request.header(ORIGIN)

            if origin is None or not origin_checker(origin):
                if origin is not None:
                    logger.debug("CORS origin rejected", icon=LogIcon.FORBIDDEN, origin=origin)
                return await handler(request)

            headers = {**config.default_headers(), **added}
            if fixed_origin is not None:
                headers[ACCESS_CONTROL_ALLOW_ORIGIN] = (fixed_origin,)
                headers[VARY] = (ORIGIN,)
            else:
                headers[ACCESS_CONTROL_ALLOW_ORIGIN] = (origin,)

            if request.method.upper() == HttpMethod.OPTIONS:
                logger.debug("CORS preflight answered", icon=LogIcon.SECURITY, origin=origin)
                return Response.ok(headers=headers)

            response = await handler(request)
            return Response(
                status_code=response.status_code,
                body=response.body,
                headers={**normalize_headers(headers), **response.headers},
            )

        return cors_handler

    return middleware
