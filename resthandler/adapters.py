"""
ASGI adapter for running a RestHandler on any ASGI-compatible server.

The adapter wraps the ASGI ``receive`` channel as the request body stream and
the ``send`` channel as the response sink, then hands both to the dispatcher.
"""

import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

from .dispatcher import RestHandler

logger = logging.getLogger(__name__)

Receive = Callable[[], Awaitable[Dict[str, Any]]]
Send = Callable[[Dict[str, Any]], Awaitable[None]]


class ASGIRequest:
    """Request handle backed by an ASGI HTTP scope and its receive channel."""

    def __init__(self, scope: Dict[str, Any], receive: Receive):
        self.scope = scope
        self._receive = receive
        self.method: str = scope["method"]
        query_string = scope.get("query_string", b"").decode("latin-1")
        # Servers percent-decode "path"; route parameters bind the raw segments
        raw_path = scope.get("raw_path")
        path = raw_path.decode("latin-1") if raw_path else scope["path"]
        self.url: str = path + (f"?{query_string}" if query_string else "")

        # Parse headers - normalize all to lowercase for case-insensitive matching
        self.headers: Dict[str, str] = {}
        for header_name, header_value in scope.get("headers", []):
            self.headers[header_name.decode("latin-1").lower()] = header_value.decode("latin-1")

    async def iter_body(self) -> AsyncIterator[bytes]:
        more_body = True
        while more_body:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            if chunk:
                yield chunk
            more_body = message.get("more_body", False)


class ASGIResponse:
    """Response sink that emits ASGI ``http.response.*`` messages."""

    def __init__(self, send: Send):
        self._send = send
        self.status_code: Optional[int] = None
        self._headers: Dict[str, Tuple[str, str]] = {}
        self.sent = False

    def set_header(self, name: str, value: str) -> None:
        self._headers[name.lower()] = (name, str(value))

    def get_header(self, name: str) -> Optional[str]:
        entry = self._headers.get(name.lower())
        return entry[1] if entry else None

    def _prepare_asgi_headers(self, body: bytes) -> List[List[bytes]]:
        headers = [
            [name.encode("latin-1"), value.encode("latin-1")]
            for key, (name, value) in self._headers.items()
            if key != "content-length"
        ]
        # Always set Content-Length to match actual body length
        headers.append([b"content-length", str(len(body)).encode("latin-1")])
        return headers

    async def end(self, body: bytes = b"") -> None:
        await self._send({
            "type": "http.response.start",
            "status": self.status_code or 200,
            "headers": self._prepare_asgi_headers(body),
        })
        await self._send({
            "type": "http.response.body",
            "body": body,
        })
        self.sent = True


class ASGIAdapter:
    """ASGI 3 application wrapping a RestHandler."""

    def __init__(self, handler: RestHandler):
        self.handler = handler

    async def __call__(self, scope: Dict[str, Any], receive: Receive, send: Send):
        """ASGI application entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        if scope["type"] != "http":
            # Only handle HTTP requests
            await send({
                "type": "http.response.start",
                "status": 404,
                "headers": [[b"content-type", b"text/plain"]],
            })
            await send({
                "type": "http.response.body",
                "body": b"Not Found",
            })
            return

        request = ASGIRequest(scope, receive)
        response = ASGIResponse(send)
        try:
            await self.handler.handle(request, response)
        except Exception:
            logger.exception(f"Unhandled exception processing {request.method} {request.url}")
            if response.sent:
                raise
            response.status_code = 500
            response.set_header("Content-Type", "text/plain")
            await response.end(b"Internal Server Error")

    async def _handle_lifespan(self, receive: Receive, send: Send):
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return


def create_asgi_app(handler: RestHandler) -> ASGIAdapter:
    """
    Create an ASGI application from a RestHandler.

    Args:
        handler: The dispatcher to wrap

    Returns:
        An ASGI-compatible application
    """
    return ASGIAdapter(handler)
