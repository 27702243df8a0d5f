"""
tests/test_stores.py – catalog + account stores without the HTTP layer.
"""
from __future__ import annotations

from uuid import uuid4

import pytest

from legosets import accounts, catalog
from legosets.db import get_db
from legosets.errors import ErrorKind, LegoError
from legosets.server import app


@pytest.fixture
def ctx():
    with app.app_context():
        yield


def test_sets_carry_theme_name(ctx):
    lego = catalog.get_set_by_num("42083-1")
    assert lego["theme"] == "Technic"
    assert lego["theme_id"] == 1
    assert lego["num_parts"] == 3599


def test_get_set_by_num_missing(ctx):
    with pytest.raises(LegoError) as err:
        catalog.get_set_by_num("0000-0")
    assert err.value.kind is ErrorKind.NOT_FOUND
    assert err.value.message == "Unable to find requested set"


def test_get_sets_by_theme(ctx):
    nums = {s["set_num"] for s in catalog.get_sets_by_theme("MINECRAFT")}
    assert "21128-1" in nums
    with pytest.raises(LegoError) as err:
        catalog.get_sets_by_theme("Duplo")
    assert err.value.kind is ErrorKind.NOT_FOUND


def test_get_all_themes_sorted(ctx):
    names = [t["name"] for t in catalog.get_all_themes()]
    assert names == sorted(names)
    assert "City" in names


def test_add_set_rejects_unknown_theme(ctx):
    with pytest.raises(LegoError) as err:
        catalog.add_set({"set_num": f"x-{uuid4().hex[:6]}", "name": "X", "theme_id": "99999"})
    assert err.value.kind is ErrorKind.OPERATION_FAILED
    assert "Unknown theme id 99999" in err.value.message


def test_add_set_requires_name(ctx):
    with pytest.raises(LegoError, match="name cannot be empty"):
        catalog.add_set({"set_num": "y-1", "name": "  "})


def test_edit_set_last_write_wins(ctx):
    num = f"lw-{uuid4().hex[:6]}"
    catalog.add_set({"set_num": num, "name": "First", "theme_id": 1})
    catalog.edit_set(num, {"name": "Second", "theme_id": 1})
    catalog.edit_set(num, {"name": "Third", "year": 2020})
    lego = catalog.get_set_by_num(num)
    assert lego["name"] == "Third"
    assert lego["year"] == 2020
    assert lego["theme_id"] is None


def test_seed_is_idempotent(ctx):
    before = len(catalog.get_all_sets())
    catalog.seed([{"id": 1, "name": "Technic"}], [
        {"set_num": "42083-1", "name": "Bugatti Chiron", "year": 2018,
         "theme_id": 1, "num_parts": 3599, "img_url": None},
    ])
    assert len(catalog.get_all_sets()) == before


def test_register_and_check_user(ctx):
    name = f"store-{uuid4().hex[:8]}"
    accounts.register_user(
        {"userName": name, "email": "s@example.com", "password": "pw", "password2": "pw"}
    )
    user = accounts.check_user({"userName": name, "password": "pw", "userAgent": "ua"})
    assert set(user) == {"userName", "email", "profileImage", "loginHistory"}
    assert user["profileImage"] == accounts.DEFAULT_PROFILE_IMAGE
    assert user["loginHistory"][0]["userAgent"] == "ua"

    row = get_db().execute(
        "SELECT password_hash FROM user WHERE user_name=?", (name,)
    ).fetchone()
    assert row["password_hash"] != "pw"


def test_check_user_wrong_password(ctx):
    name = f"store-{uuid4().hex[:8]}"
    accounts.register_user({"userName": name, "password": "pw", "password2": "pw"})
    with pytest.raises(LegoError) as err:
        accounts.check_user({"userName": name, "password": "nope"})
    assert err.value.kind is ErrorKind.AUTH_FAILED
    assert err.value.message == f"Incorrect Password for user: {name}"

    # failed attempts are not recorded
    hist = get_db().execute(
        "SELECT COUNT(*) FROM login_history h JOIN user u ON u.id=h.user_id "
        "WHERE u.user_name=?",
        (name,),
    ).fetchone()[0]
    assert hist == 0


@pytest.mark.parametrize(
    "data, message",
    [
        ({"userName": "", "password": "a", "password2": "a"}, "User Name cannot be empty"),
        ({"userName": "bob", "password": "", "password2": ""}, "Password cannot be empty"),
        ({"userName": "bob", "password": "a", "password2": "b"}, "Passwords do not match"),
    ],
)
def test_register_validation(ctx, data, message):
    with pytest.raises(LegoError) as err:
        accounts.register_user(data)
    assert err.value.message == message
