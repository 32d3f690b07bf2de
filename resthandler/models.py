"""
Core data models for the dispatch layer.

Besides the HTTP method enumeration this module holds the two response body
variants a handler can produce and the protocols describing the transport
objects the dispatcher reads from and writes to.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Optional, Protocol, Union

TEXT_PLAIN = "text/plain"
APPLICATION_JSON = "application/json"


class HTTPMethod(Enum):
    """Enumeration of common HTTP methods."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    OPTIONS = "OPTIONS"


def normalize_method(method: Union[str, HTTPMethod]) -> str:
    """Return the canonical (upper-case) name for a method or method enum."""
    if isinstance(method, HTTPMethod):
        return method.value
    return str(method).upper()


@dataclass(frozen=True)
class TextBody:
    """A plain text response body."""

    text: str
    content_type = TEXT_PLAIN

    def render(self) -> str:
        return self.text


@dataclass(frozen=True)
class JsonBody:
    """A response body serialized as JSON."""

    value: Any
    content_type = APPLICATION_JSON

    def render(self) -> str:
        return json.dumps(self.value)


Body = Union[TextBody, JsonBody]


def as_body(payload: Any) -> Body:
    """Wrap a raw handler payload in its body variant.

    Strings become ``TextBody``; every other value becomes ``JsonBody``.
    Payloads that already are a body variant pass through unchanged.
    """
    if isinstance(payload, (TextBody, JsonBody)):
        return payload
    if isinstance(payload, str):
        return TextBody(payload)
    return JsonBody(payload)


@dataclass(frozen=True)
class Response:
    """The finalized outcome of one request lifecycle.

    The body is rendered on construction, so a payload that cannot be
    serialized fails where the response is built.
    """

    status_code: int
    body: Body
    content: bytes = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "content", self.body.render().encode("utf-8"))

    @property
    def content_type(self) -> str:
        return self.body.content_type

    def encode(self) -> bytes:
        return self.content


class IncomingRequest(Protocol):
    """Transport-level request handle consumed by the dispatcher."""

    method: str
    url: str

    def iter_body(self) -> AsyncIterator[Union[bytes, str]]:
        """Yield the request body chunk by chunk until the stream ends."""
        ...


class ResponseSink(Protocol):
    """Transport-level response handle written to by the dispatcher."""

    status_code: Optional[int]

    def set_header(self, name: str, value: str) -> None:
        ...

    def get_header(self, name: str) -> Optional[str]:
        ...

    async def end(self, body: bytes = b"") -> None:
        """Write the complete body and close the response."""
        ...
