"""Handler and middleware composition, independent of the web framework."""

from collections.abc import Awaitable, Callable

from robyn_essentials.core.logger import LogIcon, logger
from robyn_essentials.core.request import RequestReader
from robyn_essentials.models.core import Response

Handler = Callable[[RequestReader], Awaitable[Response]]
Middleware = Callable[[Handler], Handler]


class MiddlewareHandler:
    """Ordered middleware chain; the first registered middleware is the outermost."""

    def __init__(self, middlewares: list[Middleware] | tuple[Middleware, ...] = ()) -> None:
        self._middlewares: list[Middleware] = []
        for middleware in middlewares:
            self.register(middleware)

    @property
    def middlewares(self) -> tuple[Middleware, ...]:
        return tuple(self._middlewares)

    def register(self, middleware: Middleware) -> "MiddlewareHandler":
        """Register a middleware. Returns self for chaining."""
        self._middlewares.append(middleware)
        name = getattr(middleware, "__qualname__", middleware.__class__.__name__)
        logger.info(f"Registered middleware: {name}", icon=LogIcon.ADAPTER)
        return self

    def wrap(self, handler: Handler) -> Handler:
        """Apply every registered middleware around handler."""
        for middleware in reversed(self._middlewares):
            handler = middleware(handler)
        return handler

    def __bool__(self) -> bool:
        return bool(self._middlewares)
