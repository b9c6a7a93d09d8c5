"""Robyn integration: request adapter, response conversion and a middleware-aware router."""

import inspect
from collections.abc import AsyncIterator, Callable
from functools import wraps
from typing import Any
from uuid import uuid4

import orjson
from asgi_correlation_id import correlation_id
from pydantic import BaseModel
from robyn import Request, SubRouter, status_codes
from robyn import Response as RobynResponse
from robyn.robyn import HttpMethod as RobynHttpMethod

from robyn_essentials.core.exceptions import (
    ClassificationMismatchError,
    DoubleConsumptionError,
    InvalidJsonError,
    StreamDecodeError,
    UnsupportedMethodError,
)
from robyn_essentials.core.logger import LogIcon, logger
from robyn_essentials.core.request import CONNECTION_INFO_KEY, RequestReader
from robyn_essentials.middlewares.base import Handler, Middleware, MiddlewareHandler
from robyn_essentials.models.core import ConnectionInfo, Response

REQUEST_ID_HEADER = "x-request-id"

# Request-level failures the router answers instead of letting them escape
ERROR_STATUS_CODES: dict[type[Exception], int] = {
    ClassificationMismatchError: status_codes.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    InvalidJsonError: status_codes.HTTP_400_BAD_REQUEST,
    StreamDecodeError: status_codes.HTTP_400_BAD_REQUEST,
    UnsupportedMethodError: status_codes.HTTP_501_NOT_IMPLEMENTED,
}


class RobynRequest:
    """RequestReader over a robyn.Request, whose body Robyn has already buffered."""

    __slots__ = ("_request", "_consumed")

    def __init__(self, request: Request) -> None:
        self._request = request
        self._consumed = False

    @property
    def method(self) -> str:
        return self._request.method

    def header(self, name: str) -> str | None:
        return self._request.headers.get(name.lower())

    def stream(self) -> AsyncIterator[bytes]:
        if self._consumed:
            raise DoubleConsumptionError("The request body can be read only once")
        self._consumed = True
        return self._body_chunks()

    async def _body_chunks(self) -> AsyncIterator[bytes]:
        body = self._request.body
        if isinstance(body, str):
            body = body.encode("utf-8")
        if body:
            yield bytes(body)

    def context(self, key: str) -> Any | None:
        if key == CONNECTION_INFO_KEY:
            ip_addr = getattr(self._request, "ip_addr", None)
            return ConnectionInfo(remote_address=ip_addr) if ip_addr else None
        return None


def parse_response(result: Any) -> Response:
    """Convert handler result to Response."""
    match result:
        case Response():
            return result
        case BaseModel():
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={"content-type": "application/json"},
                body=result.model_dump_json(indent=4),
            )
        case dict() | list():
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={"content-type": "application/json"},
                body=orjson.dumps(result).decode(),
            )
        case None:
            return Response(status_code=status_codes.HTTP_204_NO_CONTENT)
        case _:
            return Response(status_code=status_codes.HTTP_200_OK, body=str(result))


def to_robyn_response(response: Response) -> RobynResponse:
    """Convert a Response to robyn.Response, joining repeated header values."""
    return RobynResponse(
        status_code=response.status_code,
        headers={name: ", ".join(values) for name, values in response.headers.items()},
        description=response.body if response.body is not None else "",
    )


def error_response(error: Exception) -> Response:
    status_code = next(
        (code for error_cls, code in ERROR_STATUS_CODES.items() if isinstance(error, error_cls)),
        status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return Response(
        status_code=status_code,
        headers={"content-type": "application/json"},
        body=orjson.dumps({"error": error.__class__.__name__, "detail": str(error)}).decode(),
    )


def wrap_handler(handler: Callable[[RequestReader], Any], middlewares: MiddlewareHandler) -> Callable:
    """Turn a RequestReader handler into a Robyn route function behind the middleware chain.

    Request-level errors are answered inside the chain, so every middleware
    still decorates the error response.
    """

    async def endpoint(request: RequestReader) -> Response:
        try:
            return parse_response(await handler(request))
        except tuple(ERROR_STATUS_CODES) as ex:
            logger.warning("Request rejected", icon=LogIcon.VALIDATION, error=ex.__class__.__name__)
            return error_response(ex)

    chain: Handler = middlewares.wrap(endpoint)

    @wraps(handler)
    async def wrapped_handler(request: Request) -> RobynResponse:
        correlation_id.set(request.headers.get(REQUEST_ID_HEADER) or uuid4().hex)
        return to_robyn_response(await chain(RobynRequest(request)))

    # Robyn injects arguments by signature, so expose only the request
    wrapped_handler.__signature__ = inspect.Signature(  # type: ignore[attr-defined]
        [inspect.Parameter("request", inspect.Parameter.POSITIONAL_OR_KEYWORD, annotation=Request)]
    )
    return wrapped_handler


HTTP_METHODS = (
    RobynHttpMethod.GET,
    RobynHttpMethod.POST,
    RobynHttpMethod.PUT,
    RobynHttpMethod.DELETE,
    RobynHttpMethod.PATCH,
    RobynHttpMethod.HEAD,
    RobynHttpMethod.OPTIONS,
)


def _create_method_wrapper(original_method: Callable, middlewares: MiddlewareHandler) -> Callable:
    @wraps(original_method)
    def method_wrapper(*args, **kwargs) -> Callable:
        decorator = original_method(*args, **kwargs)

        def handler_decorator(handler: Callable) -> Callable:
            return decorator(wrap_handler(handler, middlewares))

        return handler_decorator

    return method_wrapper


class Router(SubRouter):
    """SubRouter whose routes take a RequestReader and run behind a middleware chain."""

    def __init__(self, *args, middlewares: list[Middleware] | tuple[Middleware, ...] = (), **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.middlewares = MiddlewareHandler(middlewares)
        self._wrap_methods()

    def _wrap_methods(self) -> None:
        """Wrap HTTP methods with the request adapter and middleware chain."""
        for method in HTTP_METHODS:
            method_name = str(method).split(".")[-1].lower()
            if hasattr(self, method_name):
                original_method = getattr(self, method_name)
                wrapped_method = _create_method_wrapper(original_method, self.middlewares)
                setattr(self, method_name, wrapped_method)
