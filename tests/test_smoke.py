"""tests/test_smoke.py"""

import pytest

from legosets.server import app


@pytest.mark.parametrize(
    "path, view",
    [
        ("/", "home"),
        ("/about", "about"),
        ("/lego/sets", "sets"),
        ("/login", "login"),
        ("/register", "register"),
    ],
)
def test_public_routes_ok(client, path, view):
    """Each public endpoint renders its own view."""
    rv = client.get(path)
    assert rv.status_code == 200
    assert f'data-view="{view}"'.encode() in rv.data


def test_about_is_markdown(client):
    rv = client.get("/about")
    assert b"<strong>Lego sets</strong>" in rv.data
    assert b"<li>" in rv.data


def test_not_found(client):
    """Completely unknown URL → 404 view with the fixed message."""
    rv = client.get("/does/not/exist")
    assert rv.status_code == 404
    assert b'data-view="404"' in rv.data
    assert b"unable to find what you" in rv.data


def test_security_headers(client):
    rv = client.get("/")
    assert rv.headers["X-Frame-Options"] == "DENY"
    assert rv.headers["X-Content-Type-Options"] == "nosniff"


def test_default_avatar_served(client):
    rv = client.get("/images/default-avatar.svg")
    assert rv.status_code == 200
    assert b"<svg" in rv.data


def test_500_handler_renders_friendly_page(client, monkeypatch):
    """An exception escaping a view ends up on the generic 500 view."""

    def _boom():
        raise RuntimeError("kaboom!")

    monkeypatch.setitem(app.view_functions, "about", _boom)
    monkeypatch.setitem(app.config, "PROPAGATE_EXCEPTIONS", False)

    rv = client.get("/about")
    assert rv.status_code == 500
    assert b'data-view="500"' in rv.data
    assert b"kaboom" not in rv.data


@pytest.mark.parametrize(
    "method, path",
    [
        ("POST", "/"),
        ("POST", "/logout"),
        ("POST", "/lego/deleteSet/42083-1"),
        ("DELETE", "/lego/sets/42083-1"),
    ],
)
def test_wrong_verb_falls_through_to_404(client, method, path):
    rv = client.open(path, method=method)
    assert rv.status_code == 404
    assert b'data-view="404"' in rv.data
    assert b"unable to find what you" in rv.data
