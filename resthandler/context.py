"""
Per-request context handed to before hooks and route handlers.
"""

import asyncio
import functools
import json
import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import parse_qsl

from .exceptions import BodyParseError, ResponseAlreadySentError
from .models import IncomingRequest, Response, ResponseSink, TextBody, as_body
from .route import Route, split_url

logger = logging.getLogger(__name__)

BodyCallback = Callable[[Optional[BaseException], Any], Any]

_MISSING = object()


class RequestState:
    """A mutable namespace scoped to one request.

    Hooks use it to hand values to later hooks and to the handler::

        def authenticate(rest):
            rest.state.user = lookup_user(rest)
            rest.next()

        def handler(rest):
            rest.send({"user": rest.state.user.name})
    """

    __slots__ = ("_store",)

    def __init__(self) -> None:
        object.__setattr__(self, "_store", {})

    def __getattr__(self, name: str) -> Any:
        try:
            return self._store[name]
        except KeyError:
            raise AttributeError(f"Request state has no attribute {name!r}") from None

    def __setattr__(self, name: str, value: Any) -> None:
        self._store[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self._store[name]
        except KeyError:
            raise AttributeError(f"Request state has no attribute {name!r}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._store

    def get(self, name: str, default: Any = None) -> Any:
        """Get an attribute with a default value."""
        return self._store.get(name, default)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._store)

    def __repr__(self) -> str:
        return f"<RequestState {self._store!r}>"


class RequestContext:
    """State and response API for a single request.

    ``send()`` and ``error()`` are the terminal operations: the first call
    finalizes the response and any later call raises
    ``ResponseAlreadySentError``. ``next()`` ends the current before hook's
    turn.
    """

    __slots__ = (
        "req", "res", "route", "params", "path", "query_params", "state",
        "_status", "_outcome", "_turn", "_body_task", "_delivering", "_pending",
    )

    def __init__(self, req: IncomingRequest, res: ResponseSink,
                 route: Optional[Route] = None, params: Optional[Mapping[str, str]] = None):
        self.req = req
        self.res = res
        self.route = route
        self.params: Mapping[str, str] = MappingProxyType(dict(params or {}))
        self.path, query = split_url(req.url)
        self.query_params: Dict[str, str] = dict(parse_qsl(query))
        self.state = RequestState()
        self._status: Optional[int] = None
        self._outcome: "asyncio.Future[Response]" = asyncio.get_running_loop().create_future()
        self._turn: "Optional[asyncio.Future[bool]]" = None
        self._body_task: "Optional[asyncio.Future[str]]" = None
        # A terminal call made inside a body callback is held until the callback returns
        self._delivering = False
        self._pending: Optional[Response] = None

    @property
    def method(self) -> str:
        return self.req.method.upper()

    @property
    def finished(self) -> bool:
        """True once send() or error() has been called."""
        return self._outcome.done() or self._pending is not None

    @property
    def response(self) -> Optional[Response]:
        if not self._outcome.done() or self._outcome.exception() is not None:
            return None
        return self._outcome.result()

    # Response production

    def status(self, status_code: int) -> "RequestContext":
        """Set the status code used by a later send()."""
        self._status = int(status_code)
        return self

    def send(self, payload: Any) -> None:
        """Finish the request successfully.

        Strings are sent as ``text/plain``; other values are serialized as JSON.
        Pass a ``TextBody`` or ``JsonBody`` to choose the rendering explicitly.
        """
        status_code = self._status if self._status is not None else 200
        self._finish(Response(status_code, as_body(payload)))

    def error(self, status_or_message: Any, message: Any = _MISSING) -> None:
        """Finish the request with an error.

        Called as ``error(message)`` the status code is 500; called as
        ``error(status_code, message)`` the given code is used. The body is
        always ``text/plain``.
        """
        if message is _MISSING:
            status_code, message = 500, status_or_message
        else:
            status_code = int(status_or_message)
        logger.info(f"{self.method} {self.path} failed with {status_code}")
        self._finish(Response(status_code, TextBody(_error_text(message))))

    def next(self) -> None:
        """Hand control to the next before hook, or to the handler."""
        if self._turn is None or self._turn.done():
            logger.warning(f"next() called outside of a before hook turn for {self.method} {self.path}")
            return
        self._turn.set_result(True)

    # Body access

    def get_body(self, callback: Optional[BodyCallback] = None) -> "asyncio.Future[str]":
        """Collect the full request body as text.

        The returned future can be awaited. If ``callback`` is given it is
        called as ``callback(error, text)`` once collection completes. The body
        is read from the transport only once per request.
        """
        if self._body_task is None:
            self._body_task = asyncio.ensure_future(self._read_body())
        if callback is not None:
            self._body_task.add_done_callback(functools.partial(self._deliver, callback))
        return self._body_task

    def get_parsed_body(self, callback: Optional[BodyCallback] = None) -> "asyncio.Future[Any]":
        """Collect the request body and parse it as JSON.

        A parse failure is reported as ``BodyParseError``: through the callback's
        error argument when a callback is given, otherwise by the awaited future.
        """
        task = asyncio.ensure_future(self._read_parsed_body())
        if callback is not None:
            task.add_done_callback(functools.partial(self._deliver, callback))
        return task

    async def _read_body(self) -> str:
        chunks = []
        async for chunk in self.req.iter_body():
            chunks.append(chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk))
        raw = b"".join(chunks)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return raw.decode("latin-1")

    async def _read_parsed_body(self) -> Any:
        text = await self.get_body()
        try:
            return json.loads(text)
        except ValueError as e:
            raise BodyParseError(f"Request body is not valid JSON: {e}", body=text, original_exception=e) from e

    def _deliver(self, callback: BodyCallback, task: "asyncio.Future[Any]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        value = None if error is not None else task.result()
        self._delivering = True
        try:
            callback(error, value)
        except Exception as e:
            self._pending = None
            if self._outcome.done():
                # The response is already on its way; nothing awaits this request any more
                raise
            self._fail(e)
            return
        finally:
            self._delivering = False
        if self._pending is not None:
            response, self._pending = self._pending, None
            self._complete(response)

    # Lifecycle plumbing used by the dispatcher

    def _begin_turn(self) -> "asyncio.Future[bool]":
        self._turn = asyncio.get_running_loop().create_future()
        return self._turn

    def _end_turn(self) -> None:
        self._turn = None

    def _finish(self, response: Response) -> None:
        if self.finished:
            raise ResponseAlreadySentError(f"Response for {self.method} {self.path} was already sent")
        if self._delivering:
            self._pending = response
            return
        self._complete(response)

    def _complete(self, response: Response) -> None:
        self._outcome.set_result(response)
        if self._turn is not None and not self._turn.done():
            self._turn.set_result(False)

    def _fail(self, exc: BaseException) -> None:
        # Route the exception to whatever the dispatcher is currently awaiting
        if self._turn is not None and not self._turn.done():
            self._turn.set_exception(exc)
        else:
            self._outcome.set_exception(exc)

    async def _wait_for_outcome(self) -> Response:
        return await self._outcome

    def __repr__(self) -> str:
        route = self.route.pattern if self.route else None
        return f"<RequestContext {self.method} {self.path} route={route!r}>"


def _error_text(message: Any) -> str:
    if isinstance(message, str):
        return message
    if isinstance(message, BaseException):
        return str(message)
    return json.dumps(message)
