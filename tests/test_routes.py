"""Tests that the deployment route table matches the handler modules."""

import importlib

import pytest

from infrastructure.routes import (AUTHORIZER_HANDLER, DEFAULT_MEMORY,
                                   DEFAULT_TIMEOUT, LAMBDA_FUNCTIONS, ROUTES,
                                   function_settings)


def resolve(handler_path):
    module_name, attribute = handler_path.rsplit(".", 1)
    return getattr(importlib.import_module(module_name), attribute)


class TestRouteTable:
    @pytest.mark.parametrize("name", sorted(LAMBDA_FUNCTIONS))
    def test_handler_is_importable(self, name):
        assert callable(resolve(LAMBDA_FUNCTIONS[name]["handler"]))

    def test_authorizer_is_importable(self):
        assert callable(resolve(AUTHORIZER_HANDLER))

    def test_every_route_has_a_function(self):
        assert {route[2] for route in ROUTES} == set(LAMBDA_FUNCTIONS)

    def test_routes_are_unique(self):
        keys = [(method, path) for method, path, _, _ in ROUTES]
        assert len(keys) == len(set(keys))

    def test_only_health_check_is_public(self):
        assert [path for _, path, _, protected in ROUTES if not protected] == ["/healthz"]

    def test_function_settings_defaults(self):
        assert function_settings("healthz") == {
            "handler": "main.healthz",
            "timeout": DEFAULT_TIMEOUT,
            "memory": DEFAULT_MEMORY,
        }
        assert function_settings("plaid-sync")["timeout"] == 120
