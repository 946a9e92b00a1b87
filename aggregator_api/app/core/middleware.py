"""
Response middlewares.

``add_default_headers`` is registered as an HTTP middleware on the
application, so it runs for every request including the ones that end
in a 404 from the router.

``RouteCORSMiddleware`` answers CORS preflights only for paths that
exist in the routing table and advertises the methods of the matching
routes.  Preflights for disabled or unknown paths reach the router and
get its 404.
"""

from typing import Awaitable, Callable, Dict, Set

from fastapi import Request, Response
from starlette.datastructures import MutableHeaders
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Match, Router
from starlette.types import ASGIApp, Message, Receive, Scope, Send

DEFAULT_HEADERS: Dict[str, str] = {
    "Content-Type": "application/json",
    "Keep-Alive": "timeout=5, max=1000",  # keep alive for max 1000 requests
    "Cache-Control": "max-age=600",  # 600 seconds for cache ttl
}


async def add_default_headers(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Inject the fixed headers into the response."""
    response = await call_next(request)
    for name, value in DEFAULT_HEADERS.items():
        response.headers[name] = value
    return response


class RouteCORSMiddleware(CORSMiddleware):
    """CORS bound to the routes present in ``router``."""

    def __init__(self, app: ASGIApp, router: Router, **kwargs) -> None:
        super().__init__(app, **kwargs)
        self.router = router

    def route_methods(self, scope: Scope) -> Set[str]:
        """Methods of every route whose path matches the request."""
        methods: Set[str] = set()
        for route in self.router.routes:
            match, _ = route.matches(scope)
            if match != Match.NONE:
                methods.update(getattr(route, "methods", None) or ())
        return methods

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "OPTIONS":
            await super().__call__(scope, receive, send)
            return

        methods = self.route_methods(scope)
        if not methods:
            await self.app(scope, receive, send)
            return

        allow_methods = ", ".join(sorted(methods | {"OPTIONS"}))

        async def send_with_methods(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                if "access-control-allow-methods" in headers:
                    headers["Access-Control-Allow-Methods"] = allow_methods
            await send(message)

        await super().__call__(scope, receive, send_with_methods)
