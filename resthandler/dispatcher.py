"""
Request dispatcher: route resolution, before hooks, handler, response.

Each request moves strictly forward through the states

    START -> ROUTE_RESOLUTION -> BEFORE_CHAIN -> HANDLER -> RESPONSE_SENT

with ERROR reachable from route resolution (not found). A before hook ends its
turn by calling ``rest.next()``; calling ``rest.send()`` or ``rest.error()``
instead skips the remaining hooks and the handler.
"""

import inspect
import logging
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple, Union

from .config import RestHandlerConfig, load_config
from .context import RequestContext
from .exceptions import ConfigurationError, RouteNotFoundError
from .models import HTTPMethod, IncomingRequest, Response, ResponseSink, TextBody, normalize_method
from .route import Hook, Route, split_url
from .router import ANY_METHOD, MethodRouter, RouteMatch, RouterTable

# Set up logger for this module
logger = logging.getLogger(__name__)


class DispatchState(Enum):
    """Stages of one request lifecycle."""

    START = "start"
    ROUTE_RESOLUTION = "route_resolution"
    BEFORE_CHAIN = "before_chain"
    HANDLER = "handler"
    RESPONSE_SENT = "response_sent"
    ERROR = "error"


async def _invoke(func: Callable[..., Any], rest: RequestContext) -> None:
    result = func(rest)
    if inspect.isawaitable(result):
        await result


class RestHandler:
    """Maps requests to route handlers and runs their lifecycle."""

    def __init__(self, config: Union[RestHandlerConfig, Mapping[str, Any], None] = None):
        self._table = RouterTable()
        self._before: Tuple[Hook, ...] = ()
        for route_config in load_config(config).routes:
            self.register_route(route_config.method, route_config)

    # Configuration

    def before(self, hook: Hook) -> "RestHandler":
        """Register a global hook, run ahead of route-local hooks on every routed request."""
        if not callable(hook):
            raise ConfigurationError(f"Before hook {hook!r} is not callable")
        self._before = self._before + (hook,)
        return self

    def register_route(self, method: Union[str, HTTPMethod],
                       descriptor: Union[str, Mapping[str, Any], Route]) -> Route:
        """Compile ``descriptor`` and add it to the router for ``method``."""
        return self._table.register_route(method, descriptor)

    def route(self, path: str, method: Union[str, HTTPMethod] = ANY_METHOD,
              before: Union[Hook, Sequence[Hook], None] = None):
        """Decorator to register a route handler."""
        def decorator(func: Callable):
            self.register_route(method, Route(path, func, before))
            return func

        return decorator

    def get(self, path: str, before: Union[Hook, Sequence[Hook], None] = None):
        """Decorator to register a GET route handler."""
        return self.route(path, HTTPMethod.GET, before)

    def post(self, path: str, before: Union[Hook, Sequence[Hook], None] = None):
        """Decorator to register a POST route handler."""
        return self.route(path, HTTPMethod.POST, before)

    def put(self, path: str, before: Union[Hook, Sequence[Hook], None] = None):
        """Decorator to register a PUT route handler."""
        return self.route(path, HTTPMethod.PUT, before)

    def delete(self, path: str, before: Union[Hook, Sequence[Hook], None] = None):
        """Decorator to register a DELETE route handler."""
        return self.route(path, HTTPMethod.DELETE, before)

    def patch(self, path: str, before: Union[Hook, Sequence[Hook], None] = None):
        """Decorator to register a PATCH route handler."""
        return self.route(path, HTTPMethod.PATCH, before)

    def get_method_router(self, method: Union[str, HTTPMethod]) -> Optional[MethodRouter]:
        return self._table.get_method_router(method)

    @property
    def table(self) -> RouterTable:
        return self._table

    @property
    def global_hooks(self) -> Tuple[Hook, ...]:
        return self._before

    def reset(self) -> None:
        """Clear every registered route. Global hooks are kept."""
        self._table.reset()

    # Request lifecycle

    async def handle(self, req: IncomingRequest, res: ResponseSink) -> RequestContext:
        """Run one request lifecycle and return its context once the response is written."""
        method = normalize_method(req.method)
        path, _ = split_url(req.url)
        logger.debug(f"Starting dispatch for {method} {path}")

        def log_state_transition(state: DispatchState, proceed: bool):
            logger.debug(f"State {state.value}: {'CONTINUE' if proceed else 'STOP'}")

        try:
            match = self._resolve_route(method, path)
        except RouteNotFoundError as e:
            log_state_transition(DispatchState.ROUTE_RESOLUTION, False)
            logger.debug(f"{e}; responding 404")
            rest = RequestContext(req, res)
            rest._finish(Response(404, TextBody("Not Found")))
            log_state_transition(DispatchState.ERROR, False)
        else:
            log_state_transition(DispatchState.ROUTE_RESOLUTION, True)
            rest = RequestContext(req, res, match.route, match.params)

            proceed = await self._run_before_chain(rest, self._before + match.route.before)
            log_state_transition(DispatchState.BEFORE_CHAIN, proceed)
            if proceed:
                log_state_transition(DispatchState.HANDLER, True)
                await _invoke(match.route.handler, rest)

        response = await rest._wait_for_outcome()
        await self._write_response(res, response)
        log_state_transition(DispatchState.RESPONSE_SENT, False)
        return rest

    def _resolve_route(self, method: str, path: str) -> RouteMatch:
        router = self._table.resolve(method)
        if router is None:
            raise RouteNotFoundError(method, path)
        match = router.find_route(path)
        # Routes declared without a handler can be looked up but not dispatched
        if match is None or match.route.handler is None:
            raise RouteNotFoundError(method, path)
        return match

    async def _run_before_chain(self, rest: RequestContext, hooks: Tuple[Hook, ...]) -> bool:
        """Run hooks one at a time; False if one of them finished the request."""
        for hook in hooks:
            turn = rest._begin_turn()
            try:
                await _invoke(hook, rest)
                proceed = await turn
            finally:
                rest._end_turn()
            if not proceed or rest.finished:
                logger.debug(f"Before hook {getattr(hook, '__name__', hook)!s} finished {rest.method} {rest.path}")
                return False
        return not rest.finished

    async def _write_response(self, res: ResponseSink, response: Response) -> None:
        res.status_code = response.status_code
        res.set_header("Content-Type", response.content_type)
        await res.end(response.encode())


def create(config: Union[RestHandlerConfig, Mapping[str, Any], None] = None) -> RestHandler:
    """Build a dispatcher from a configuration listing its routes."""
    return RestHandler(config)
