"""Tests for dispatcher configuration."""

import pytest

from resthandler import ConfigurationError, HTTPMethod, RestHandlerConfig, RouteConfig, create, load_config


def handler_fn(rest):
    rest.send("ok")


def hook(rest):
    rest.next()


class TestLoadConfig:
    """Test validating configuration mappings."""

    def test_bare_paths_become_route_configs(self):
        config = load_config({"routes": ["/cars", "/cars/:carId"]})

        assert [r.path for r in config.routes] == ["/cars", "/cars/:carId"]
        assert all(r.method == "*" for r in config.routes)
        assert all(r.handler is None for r in config.routes)

    def test_descriptor_fields(self):
        config = load_config({"routes": [{"path": "/cars", "method": "get", "before": hook, "handler": handler_fn}]})
        route = config.routes[0]

        assert route.method == "GET"
        assert route.before == [hook]
        assert route.handler is handler_fn

    def test_method_enum_accepted(self):
        config = load_config({"routes": [{"path": "/cars", "method": HTTPMethod.POST, "handler": handler_fn}]})
        assert config.routes[0].method == "POST"

    def test_none_is_empty_config(self):
        assert load_config(None).routes == []

    def test_model_passes_through(self):
        config = RestHandlerConfig(routes=[RouteConfig(path="/cars", handler=handler_fn)])
        assert load_config(config) is config

    def test_missing_path_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config({"routes": [{"handler": handler_fn}]})

        assert exc_info.value.errors
        assert exc_info.value.errors[0]["loc"] == ("routes", 0, "path")

    def test_non_callable_handler_rejected(self):
        with pytest.raises(ConfigurationError):
            load_config({"routes": [{"path": "/cars", "handler": "nope"}]})

    def test_non_callable_hook_rejected(self):
        with pytest.raises(ConfigurationError):
            load_config({"routes": [{"path": "/cars", "before": [hook, 42], "handler": handler_fn}]})

    def test_descriptor_without_handler_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config({"routes": [{"path": "/cars", "method": "GET"}]})

        assert "needs a handler" in str(exc_info.value.errors[0]["msg"])

    def test_descriptor_with_null_handler_rejected(self):
        with pytest.raises(ConfigurationError):
            load_config({"routes": [{"path": "/cars", "handler": None}]})

    def test_misspelled_key_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config({"routes": [{"path": "/cars", "handler": handler_fn, "befor": hook}]})

        error = exc_info.value.errors[0]
        assert error["type"] == "extra_forbidden"
        assert error["loc"] == ("routes", 0, "befor")


class TestCreate:
    """Test building a dispatcher from configuration."""

    def test_routes_registered_per_method(self):
        handler = create({
            "routes": [
                {"path": "/cars", "method": "GET", "handler": handler_fn},
                {"path": "/cars", "method": "POST", "handler": handler_fn},
                "/trucks",
            ]
        })

        assert [str(r) for r in handler.get_method_router("GET").get_routes()] == ["/cars"]
        assert [str(r) for r in handler.get_method_router("POST").get_routes()] == ["/cars"]
        assert [str(r) for r in handler.get_method_router("*").get_routes()] == ["/trucks"]

    def test_route_hooks_compiled(self):
        handler = create({"routes": [{"path": "/cars", "before": hook, "handler": handler_fn}]})
        route = handler.get_method_router("*").get_routes()[0]

        assert route.before == (hook,)
        assert route.handler is handler_fn

    def test_malformed_pattern_fails_at_create(self):
        with pytest.raises(ConfigurationError, match="Unnamed parameter"):
            create({"routes": ["/cars/:"]})

    def test_create_from_model(self):
        handler = create(RestHandlerConfig(routes=[RouteConfig(path="/cars", handler=handler_fn)]))
        assert len(handler.get_method_router("*")) == 1

    def test_before_returns_handler_for_chaining(self):
        handler = create()
        assert handler.before(hook) is handler
        assert handler.global_hooks == (hook,)

    def test_before_rejects_non_callable(self):
        with pytest.raises(ConfigurationError):
            create().before("nope")

    def test_reset_keeps_global_hooks(self):
        handler = create({"routes": ["/cars"]})
        handler.before(hook)

        handler.reset()

        assert len(handler.get_method_router("*")) == 0
        assert handler.global_hooks == (hook,)
