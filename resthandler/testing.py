"""
In-memory request and response doubles for exercising a RestHandler.

    handler = create({"routes": [{"path": "/echo", "handler": echo}]})
    res = MockResponse()
    await handler.handle(MockRequest("POST", "/echo", data=["a", "b"]), res)
    assert res.written == "ab"
"""

import asyncio
from typing import AsyncIterator, Dict, Iterable, Optional, Union


class MockRequest:
    """Request double delivering its body in the given chunks."""

    def __init__(self, method: str = "GET", url: str = "/",
                 data: Optional[Iterable[Union[str, bytes]]] = None,
                 headers: Optional[Dict[str, str]] = None):
        self.method = method
        self.url = url
        self.data = list(data or [])
        self.headers = dict(headers or {})
        self.chunks_read = 0

    async def iter_body(self) -> AsyncIterator[Union[str, bytes]]:
        for chunk in self.data:
            # Deliver each chunk on a later loop iteration, as a socket would
            await asyncio.sleep(0)
            self.chunks_read += 1
            yield chunk


class MockResponse:
    """Response sink double that records what was written."""

    def __init__(self):
        self.status_code: Optional[int] = None
        self.headers: Dict[str, str] = {}
        self.body: bytes = b""
        self.ended = False

    def set_header(self, name: str, value: str) -> None:
        self.headers[name.lower()] = value

    def get_header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    async def end(self, body: bytes = b"") -> None:
        self.body += body
        self.ended = True

    @property
    def written(self) -> str:
        """The body written so far, decoded as UTF-8."""
        return self.body.decode("utf-8")
