"""Application wiring: the app imports and exposes every route."""

import importlib

import pytest


@pytest.mark.parametrize(
    "module",
    [
        "app.main",
        "app.repositories.request_repo",
        "app.repositories.user_repo",
        "app.repositories.message_repo",
        "scripts.create_sample_requests",
        "scripts.update_request_statuses",
    ],
)
def test_module_imports(module):
    assert importlib.import_module(module) is not None


def test_routes_registered():
    from app.main import app

    routes = {(method, route.path) for route in app.routes for method in getattr(route, "methods", ())}

    expected = {
        ("POST", "/api/register"),
        ("POST", "/api/session"),
        ("GET", "/api/session"),
        ("DELETE", "/api/session"),
        ("POST", "/api/login"),
        ("POST", "/api/logout"),
        ("GET", "/api/me"),
        ("GET", "/api/requests"),
        ("POST", "/api/requests"),
        ("GET", "/api/requests/public"),
        ("GET", "/api/requests/{request_id}"),
        ("PUT", "/api/requests/{request_id}"),
        ("DELETE", "/api/requests/{request_id}"),
        ("DELETE", "/api/requests/{request_id}/delete"),
        ("POST", "/api/requests/{request_id}/fulfill"),
        ("GET", "/api/requests/{request_id}/messages"),
        ("POST", "/api/requests/{request_id}/messages"),
        ("GET", "/api/health"),
        ("GET", "/api/health/db"),
    }
    assert expected <= routes


def test_request_repository_keeps_builtin_annotations():
    from app.repositories.request_repo import RequestRepository

    assert RequestRepository.message_counts.__annotations__["request_ids"] == list[int]
    assert RequestRepository.count.__annotations__["filters"] is list
