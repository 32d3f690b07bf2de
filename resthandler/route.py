"""Route pattern compilation, matching and rendering."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .exceptions import ConfigurationError, MissingRouteParameterError

logger = logging.getLogger(__name__)

Hook = Callable[..., Any]
Handler = Callable[..., Any]


def split_path(path: str) -> List[str]:
    """Split a path on ``/``, dropping empty pieces.

    Examples:
        split_path("/cars/123") -> ["cars", "123"]
        split_path("/") -> []
        split_path("/cars/") -> ["cars"]
    """
    return [s for s in path.split('/') if s]


def split_url(url: str) -> Tuple[str, str]:
    """Split a request URL into its path and raw query string.

    Examples:
        split_url("/cars?color=red") -> ("/cars", "color=red")
        split_url("/cars#top") -> ("/cars", "")
    """
    url = url.split('#', 1)[0]
    path, _, query = url.partition('?')
    return path or '/', query


@dataclass(frozen=True)
class PathSegment:
    """A compiled piece of a route pattern.

    Literal:  ``cars``    (param_name=None)
    Param:    ``:carId``  (param_name="carId")
    """

    value: str
    param_name: Optional[str] = None

    @property
    def is_param(self) -> bool:
        return self.param_name is not None

    def matches(self, candidate: str) -> bool:
        return self.is_param or self.value == candidate


def parse_pattern(pattern: str) -> Tuple[PathSegment, ...]:
    """Compile a pattern string into its segments.

    Raises:
        ConfigurationError: if the pattern is empty, has a ``:`` segment with no
            name, or repeats a parameter name.
    """
    if not isinstance(pattern, str):
        raise ConfigurationError(f"Route path must be a string, got {type(pattern).__name__}")
    if not pattern:
        raise ConfigurationError("Route path must not be empty")

    segments: List[PathSegment] = []
    seen = set()
    for part in split_path(pattern):
        if not part.startswith(':'):
            segments.append(PathSegment(part))
            continue
        name = part[1:]
        if not name:
            raise ConfigurationError(f"Unnamed parameter segment in route {pattern}")
        if name in seen:
            raise ConfigurationError(f"Duplicate parameter '{name}' in route {pattern}")
        seen.add(name)
        segments.append(PathSegment(part, param_name=name))
    return tuple(segments)


class Route:
    """A compiled path pattern with its handler and route-local hooks.

    A route is created once at configuration time and is not modified
    afterwards.
    """

    __slots__ = ("pattern", "segments", "handler", "before")

    def __init__(self, pattern: str, handler: Optional[Handler] = None,
                 before: Union[Hook, Sequence[Hook], None] = None):
        if isinstance(pattern, str) and pattern and not pattern.startswith('/'):
            pattern = '/' + pattern
        self.segments = parse_pattern(pattern)
        if handler is not None and not callable(handler):
            raise ConfigurationError(f"Handler for route {pattern} is not callable")
        self.pattern = pattern
        self.handler = handler
        self.before: Tuple[Hook, ...] = _normalize_hooks(before)

    @classmethod
    def compile(cls, descriptor: Union[str, Mapping[str, Any], "Route"]) -> "Route":
        """Build a route from a bare path string or a ``{path, before, handler}`` mapping."""
        if isinstance(descriptor, Route):
            return descriptor
        if isinstance(descriptor, str):
            return cls(descriptor)
        if isinstance(descriptor, Mapping):
            if "path" not in descriptor:
                raise ConfigurationError("Route descriptor is missing 'path'")
            return cls(descriptor["path"], descriptor.get("handler"), descriptor.get("before"))
        # Attribute-style descriptors (e.g. RouteConfig models)
        path = getattr(descriptor, "path", None)
        if path is None:
            raise ConfigurationError(f"Cannot compile a route from {descriptor!r}")
        return cls(path, getattr(descriptor, "handler", None), getattr(descriptor, "before", None))

    @property
    def param_names(self) -> List[str]:
        return [s.param_name for s in self.segments if s.param_name is not None]

    def match(self, path: str) -> Optional[Dict[str, str]]:
        """Match a concrete path against this route.

        Returns:
            The bound parameters (raw segment strings) on a structural match,
            None otherwise. Partial or prefix matches never succeed.
        """
        candidate = split_path(path)
        if len(candidate) != len(self.segments):
            return None

        params: Dict[str, str] = {}
        for segment, value in zip(self.segments, candidate):
            if not segment.matches(value):
                return None
            if segment.param_name is not None:
                params[segment.param_name] = value
        return params

    def render(self, params: Optional[Mapping[str, Any]] = None) -> str:
        """Render a concrete path by substituting parameter values.

        Without a mapping the original pattern is returned.

        Raises:
            MissingRouteParameterError: if ``params`` lacks a parameter of this route.
        """
        if params is None:
            return self.pattern

        parts = []
        for segment in self.segments:
            if segment.param_name is None:
                parts.append(segment.value)
                continue
            if segment.param_name not in params:
                raise MissingRouteParameterError(self.pattern, segment.param_name)
            parts.append(str(params[segment.param_name]))
        return '/' + '/'.join(parts)

    def __str__(self) -> str:
        return self.pattern

    def __repr__(self) -> str:
        return f"Route({self.pattern!r})"


def _normalize_hooks(before: Union[Hook, Sequence[Hook], None]) -> Tuple[Hook, ...]:
    if before is None:
        return ()
    if callable(before):
        return (before,)
    hooks = tuple(before)
    for hook in hooks:
        if not callable(hook):
            raise ConfigurationError(f"Before hook {hook!r} is not callable")
    return hooks


def compile_route(descriptor: Union[str, Mapping[str, Any], Route]) -> Route:
    """Compile a route descriptor; see ``Route.compile``."""
    route = Route.compile(descriptor)
    logger.debug(f"Compiled route {route.pattern} ({len(route.segments)} segments)")
    return route
