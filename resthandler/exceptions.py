"""
Custom exceptions for the request dispatch layer.
"""
from typing import Any, Dict, List, Optional


class RestHandlerError(Exception):
    """Base exception for request dispatch errors."""

    pass


class ConfigurationError(RestHandlerError):
    """Raised when a route pattern or handler configuration is malformed."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(self.message)


class RouteNotFoundError(RestHandlerError):
    """Raised when no router or route matches the request."""

    def __init__(self, method: str, path: str):
        self.method = method
        self.path = path
        super().__init__(f"No route for {method} {path}")


class BodyParseError(RestHandlerError):
    """Raised when the accumulated request body is not valid JSON."""

    def __init__(self, message="Failed to parse request body", body: Optional[str] = None, original_exception=None):
        self.message = message
        self.body = body
        self.original_exception = original_exception
        super().__init__(self.message)


class MissingRouteParameterError(RestHandlerError, KeyError):
    """Raised when rendering a route without a value for one of its parameters."""

    def __init__(self, pattern: str, name: str):
        self.pattern = pattern
        self.name = name
        super().__init__(f"Missing value for parameter '{name}' of route {pattern}")

    def __str__(self):
        return self.args[0]


class ResponseAlreadySentError(RestHandlerError):
    """Raised when send() or error() is called after the response was finalized."""

    pass
