"""Per-method route lists and the method-to-router table."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .models import HTTPMethod, normalize_method
from .route import Route, compile_route

logger = logging.getLogger(__name__)

ANY_METHOD = "*"


@dataclass(frozen=True)
class RouteMatch:
    """Result of a successful route lookup."""

    route: Route
    params: Dict[str, str]


class MethodRouter:
    """An ordered list of routes for one HTTP method (or the wildcard method).

    Routes are matched in insertion order and the first structural match
    wins. The route list is held as a tuple that mutations replace wholesale,
    so a lookup always iterates a consistent snapshot.
    """

    def __init__(self, method: str = ANY_METHOD):
        self.method = method
        self._routes: Tuple[Route, ...] = ()

    def add_route(self, route: Route) -> Route:
        """Append a route; it matches after every route added before it."""
        self._routes = self._routes + (route,)
        logger.debug(f"Registered route {self.method} {route.pattern}")
        return route

    def find_route(self, path: str) -> Optional[RouteMatch]:
        """Return the first route structurally matching ``path``, or None."""
        for route in self._routes:
            params = route.match(path)
            if params is not None:
                logger.debug(f"Matched {self.method} {path} to route {route.pattern}")
                return RouteMatch(route, params)
        logger.debug(f"No {self.method} route matches {path}")
        return None

    def get_routes(self) -> Tuple[Route, ...]:
        """Return the routes in declaration order."""
        return self._routes

    def reset(self) -> None:
        """Remove every route; the router itself stays usable."""
        self._routes = ()

    def __len__(self) -> int:
        return len(self._routes)

    def __repr__(self) -> str:
        return f"MethodRouter({self.method!r}, routes={len(self._routes)})"


class RouterTable:
    """Mapping from method name (and ``*``) to its MethodRouter."""

    def __init__(self):
        self._by_method: Dict[str, MethodRouter] = {}

    def resolve(self, method: Union[str, HTTPMethod]) -> Optional[MethodRouter]:
        """Return the router for ``method``, falling back to the wildcard router.

        None means there is no router for this method at all, which callers
        must treat as not found.
        """
        router = self._by_method.get(normalize_method(method))
        if router is None:
            router = self._by_method.get(ANY_METHOD)
        return router

    def register_route(self, method: Union[str, HTTPMethod],
                       descriptor: Union[str, Mapping[str, Any], Route]) -> Route:
        """Compile ``descriptor`` and append it to the router for ``method``."""
        route = compile_route(descriptor)
        return self._router_for(normalize_method(method)).add_route(route)

    def get_method_router(self, method: Union[str, HTTPMethod]) -> Optional[MethodRouter]:
        """Return the router registered for exactly ``method`` (no wildcard fallback)."""
        return self._by_method.get(normalize_method(method))

    def methods(self) -> Tuple[str, ...]:
        return tuple(self._by_method)

    def reset(self) -> None:
        """Clear every router's routes, keeping router identities."""
        for router in self._by_method.values():
            router.reset()

    def _router_for(self, method: str) -> MethodRouter:
        router = self._by_method.get(method)
        if router is None:
            # Swap the whole mapping so concurrent readers see either table
            self._by_method = {**self._by_method, method: MethodRouter(method)}
            router = self._by_method[method]
        return router
