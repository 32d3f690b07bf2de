"""
Configuration models for building a dispatcher.

A configuration lists routes in declaration order. Each entry is either a bare
path string (registered for any method, without a handler) or a descriptor::

    {
        "path": "/cars/:carId",
        "method": "GET",            # optional, defaults to "*" (any method)
        "before": [hook_a, hook_b], # optional, a single hook is accepted too
        "handler": get_car,         # required
    }

Unknown descriptor keys are rejected.
"""

from typing import Any, Callable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError


class RouteConfig(BaseModel):
    """One route declaration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = Field(..., description="Path pattern, e.g. /cars/:carId")
    method: str = Field("*", description="HTTP method, or * for any method")
    before: List[Callable[..., Any]] = Field(
        default_factory=list,
        description="Route-local hooks run after the global hooks"
    )
    handler: Optional[Callable[..., Any]] = Field(
        None,
        description="Callable receiving the RequestContext"
    )

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        # Accept HTTPMethod members as well as strings
        value = getattr(value, "value", value)
        return value.upper() if isinstance(value, str) else value

    @field_validator("before", mode="before")
    @classmethod
    def _listify_before(cls, value: Any) -> Any:
        if value is None:
            return []
        if callable(value):
            return [value]
        return list(value)


class RestHandlerConfig(BaseModel):
    """Top-level dispatcher configuration."""

    model_config = ConfigDict(frozen=True)

    routes: List[RouteConfig] = Field(default_factory=list)

    @field_validator("routes", mode="before")
    @classmethod
    def _expand_bare_paths(cls, value: Any) -> Any:
        if value is None:
            return []
        routes = []
        for entry in value:
            if isinstance(entry, str):
                # Bare paths are the only handler-less declarations
                entry = RouteConfig(path=entry)
            elif isinstance(entry, Mapping) and entry.get("handler") is None:
                raise ValueError(f"Route descriptor {entry.get('path')!r} needs a handler")
            routes.append(entry)
        return routes


def load_config(config: Union[RestHandlerConfig, Mapping[str, Any], None]) -> RestHandlerConfig:
    """Validate a configuration mapping.

    Raises:
        ConfigurationError: if the mapping does not describe valid routes. The
            pydantic error details are kept on ``ConfigurationError.errors``.
    """
    if config is None:
        return RestHandlerConfig()
    if isinstance(config, RestHandlerConfig):
        return config
    try:
        return RestHandlerConfig.model_validate(dict(config))
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid dispatcher configuration",
            errors=e.errors(include_url=False)
        ) from e
