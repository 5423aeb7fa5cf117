"""
Handler and middleware types for the request pipeline

A handler turns a request into a response. A middleware takes a handler and
returns a new handler. Layers apply outside-in as declared: the first layer
passed to ``compose_middleware`` sees the request first and the response last.
"""
from functools import reduce
from typing import Awaitable, Callable

from starlette.requests import Request
from starlette.responses import Response

Handler = Callable[[Request], Awaitable[Response]]
TenantHandler = Callable[[Request, str], Awaitable[Response]]
Middleware = Callable[[Handler], Handler]


def compose_middleware(*middlewares: Middleware) -> Middleware:
    """Fold ``middlewares`` right-to-left around a terminal handler"""

    def apply(handler: Handler) -> Handler:
        return reduce(lambda acc, middleware: middleware(acc), reversed(middlewares), handler)

    return apply


def conditional(middleware: Middleware, predicate: Callable[[], bool]) -> Middleware:
    """Apply ``middleware`` only for requests arriving while ``predicate()`` holds"""

    def apply(handler: Handler) -> Handler:
        wrapped = middleware(handler)

        async def gated(request: Request) -> Response:
            if predicate():
                return await wrapped(request)
            return await handler(request)

        return gated

    return apply
