"""
tests/conftest.py
"""
from __future__ import annotations

import itertools
import json
from pathlib import Path
from typing import Generator

import pytest
from flask.testing import FlaskClient

from legosets import catalog
from legosets.server import app, initialize

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@pytest.fixture(scope="session")
def _tmp_root(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """One temp dir (DB + uploads) for the whole test session."""
    return tmp_path_factory.mktemp("legosets")


@pytest.fixture(scope="session", autouse=True)
def _configure_app(_tmp_root: Path) -> None:
    """
    Point the app at a throw-away database, create the schema and load
    the sample catalog from data/*.json.
    """
    app.config.update(
        TESTING=True,
        DATABASE=str(_tmp_root / "test.sqlite3"),
        UPLOAD_FOLDER=str(_tmp_root / "uploads"),
    )
    initialize()
    with app.app_context():
        catalog.seed(
            json.loads((DATA_DIR / "themeData.json").read_text()),
            json.loads((DATA_DIR / "setData.json").read_text()),
        )


_ip_counter = itertools.count(1)


@pytest.fixture
def client() -> Generator[FlaskClient, None, None]:
    """
    A fresh test client per test, each with its own REMOTE_ADDR so the
    login rate limit never bleeds between tests.
    """
    n = next(_ip_counter)
    with app.test_client() as c, app.app_context():
        c.environ_base["REMOTE_ADDR"] = f"10.0.{n // 250}.{n % 250 + 1}"
        yield c
