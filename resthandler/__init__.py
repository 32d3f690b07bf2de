"""
A small request routing and dispatch layer.

Requests are matched by HTTP method and ``:param`` path pattern, run through an
ordered chain of before hooks, and handed to a route handler whose ``send()``
or ``error()`` call is turned into an HTTP response.
"""

from .adapters import ASGIAdapter, create_asgi_app
from .config import RestHandlerConfig, RouteConfig, load_config
from .context import RequestContext, RequestState
from .dispatcher import DispatchState, RestHandler, create
from .exceptions import (
    BodyParseError,
    ConfigurationError,
    MissingRouteParameterError,
    ResponseAlreadySentError,
    RestHandlerError,
    RouteNotFoundError,
)
from .models import HTTPMethod, JsonBody, Response, TextBody, as_body
from .route import PathSegment, Route, compile_route
from .router import ANY_METHOD, MethodRouter, RouteMatch, RouterTable

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = [
    "create",
    "RestHandler",
    "DispatchState",
    "RequestContext",
    "RequestState",
    "Route",
    "PathSegment",
    "compile_route",
    "MethodRouter",
    "RouterTable",
    "RouteMatch",
    "ANY_METHOD",
    "HTTPMethod",
    "TextBody",
    "JsonBody",
    "Response",
    "as_body",
    "RestHandlerConfig",
    "RouteConfig",
    "load_config",
    "RestHandlerError",
    "ConfigurationError",
    "RouteNotFoundError",
    "BodyParseError",
    "MissingRouteParameterError",
    "ResponseAlreadySentError",
    "ASGIAdapter",
    "create_asgi_app",
]
