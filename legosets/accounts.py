"""
Account store – registration, credential checks and login history.
"""

import sqlite3

from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash

from .db import get_db, utc_now
from .errors import auth_failed

DEFAULT_PROFILE_IMAGE = "/images/default-avatar.svg"


def initialize() -> None:
    db = get_db()
    db.executescript(
        """
        CREATE TABLE IF NOT EXISTS user (
            id             INTEGER PRIMARY KEY,
            user_name      TEXT UNIQUE NOT NULL,
            email          TEXT NOT NULL DEFAULT '',
            password_hash  TEXT NOT NULL,
            profile_image  TEXT NOT NULL
        );

        -- one row per successful login, never pruned
        CREATE TABLE IF NOT EXISTS login_history (
            id          INTEGER PRIMARY KEY,
            user_id     INTEGER NOT NULL REFERENCES user(id) ON DELETE CASCADE,
            date_time   TEXT NOT NULL,
            user_agent  TEXT NOT NULL DEFAULT ''
        );
        CREATE INDEX IF NOT EXISTS idx_login_history_user
            ON login_history(user_id, id);
        """
    )
    db.commit()


def _history(user_id: int, *, db) -> list[dict[str, str]]:
    rows = db.execute(
        "SELECT date_time, user_agent FROM login_history "
        "WHERE user_id=? ORDER BY id DESC",
        (user_id,),
    ).fetchall()
    return [{"dateTime": r["date_time"], "userAgent": r["user_agent"]} for r in rows]


def _as_user(row, *, db) -> dict:
    return {
        "userName": row["user_name"],
        "email": row["email"],
        "profileImage": row["profile_image"],
        "loginHistory": _history(row["id"], db=db),
    }


def register_user(data) -> None:
    user_name = (data.get("userName") or "").strip()
    password = data.get("password") or ""
    if not user_name:
        raise auth_failed("User Name cannot be empty")
    if not password:
        raise auth_failed("Password cannot be empty")
    if password != (data.get("password2") or ""):
        raise auth_failed("Passwords do not match")

    db = get_db()
    try:
        db.execute(
            "INSERT INTO user (user_name, email, password_hash, profile_image) "
            "VALUES (?,?,?,?)",
            (
                user_name,
                (data.get("email") or "").strip(),
                generate_password_hash(password),
                data.get("profileImage") or DEFAULT_PROFILE_IMAGE,
            ),
        )
        db.commit()
    except sqlite3.IntegrityError:
        db.rollback()
        raise auth_failed("User Name already taken") from None
    except sqlite3.Error as exc:
        db.rollback()
        current_app.logger.exception("Creating user %s failed", user_name)
        raise auth_failed("There was an error creating the user") from exc


def check_user(data) -> dict:
    """
    Verify ``userName`` / ``password`` and record the login.

    Returns the user with ``loginHistory`` newest first; the password hash
    never leaves this module.
    """
    user_name = (data.get("userName") or "").strip()
    db = get_db()
    row = db.execute("SELECT * FROM user WHERE user_name=?", (user_name,)).fetchone()
    if row is None:
        raise auth_failed(f"Unable to find user: {user_name}")
    if not check_password_hash(row["password_hash"], data.get("password") or ""):
        raise auth_failed(f"Incorrect Password for user: {user_name}")

    db.execute(
        "INSERT INTO login_history (user_id, date_time, user_agent) VALUES (?,?,?)",
        (row["id"], utc_now().isoformat(timespec="seconds"), data.get("userAgent") or ""),
    )
    db.commit()
    return _as_user(row, db=db)
