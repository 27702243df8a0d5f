"""
Catalog store – lego sets grouped by theme.

Every read returns plain dicts (``theme`` carries the theme name) so the
templates never touch ``sqlite3.Row`` objects; every failure is raised as
a :class:`~legosets.errors.LegoError`.
"""

import sqlite3

from flask import current_app

from .db import get_db
from .errors import not_found, operation_failed

SET_FIELDS = ("set_num", "name", "year", "num_parts", "theme_id", "img_url")

_SET_SELECT = """
    SELECT s.set_num, s.name, s.year, s.num_parts, s.theme_id, s.img_url,
           t.name AS theme
      FROM lego_set s
      LEFT JOIN theme t ON t.id = s.theme_id
"""


def initialize() -> None:
    db = get_db()
    db.executescript(
        """
        CREATE TABLE IF NOT EXISTS theme (
            id    INTEGER PRIMARY KEY,
            name  TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS lego_set (
            set_num    TEXT PRIMARY KEY,
            name       TEXT NOT NULL,
            year       INTEGER,
            num_parts  INTEGER,
            theme_id   INTEGER REFERENCES theme(id),
            img_url    TEXT
        );
        CREATE INDEX IF NOT EXISTS idx_lego_set_theme ON lego_set(theme_id);
        """
    )
    db.commit()


###############################################################################
# Reads
###############################################################################
def get_all_sets() -> list[dict]:
    rows = get_db().execute(_SET_SELECT + " ORDER BY s.set_num").fetchall()
    return [dict(r) for r in rows]


def get_set_by_num(set_num: str) -> dict:
    row = get_db().execute(_SET_SELECT + " WHERE s.set_num=?", (set_num,)).fetchone()
    if row is None:
        raise not_found("Unable to find requested set")
    return dict(row)


def get_sets_by_theme(theme: str) -> list[dict]:
    """Case-insensitive substring match on the theme name."""
    needle = (theme or "").strip().lower()
    rows = get_db().execute(
        _SET_SELECT + " WHERE instr(lower(t.name), ?) > 0 ORDER BY s.set_num",
        (needle,),
    ).fetchall()
    if not rows:
        raise not_found("Unable to find requested sets")
    return [dict(r) for r in rows]


def get_all_themes() -> list[dict]:
    rows = get_db().execute("SELECT id, name FROM theme ORDER BY name").fetchall()
    return [dict(r) for r in rows]


###############################################################################
# Mutations
###############################################################################
def _int_or_none(data, key: str):
    raw = data.get(key)
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        raise operation_failed(f"{key} must be a whole number") from None


def _clean(data) -> dict:
    """Pick the known set columns out of a form / dict and validate them."""
    set_num = (data.get("set_num") or "").strip()
    name = (data.get("name") or "").strip()
    if not set_num:
        raise operation_failed("set_num cannot be empty")
    if not name:
        raise operation_failed("name cannot be empty")

    row = {
        "set_num": set_num,
        "name": name,
        "year": _int_or_none(data, "year"),
        "num_parts": _int_or_none(data, "num_parts"),
        "theme_id": _int_or_none(data, "theme_id"),
        "img_url": (data.get("img_url") or "").strip() or None,
    }
    if row["theme_id"] is not None:
        hit = get_db().execute(
            "SELECT 1 FROM theme WHERE id=?", (row["theme_id"],)
        ).fetchone()
        if not hit:
            raise operation_failed(f"Unknown theme id {row['theme_id']}")
    return row


def _integrity_message(exc: sqlite3.IntegrityError, set_num: str) -> str:
    text = str(exc)
    if "UNIQUE" in text or "PRIMARY KEY" in text:
        return f"set_num {set_num} must be unique"
    if "FOREIGN KEY" in text:
        return "theme_id must reference an existing theme"
    return "The set could not be saved"


def add_set(data) -> None:
    row = _clean(data)
    db = get_db()
    try:
        db.execute(
            "INSERT INTO lego_set (set_num,name,year,num_parts,theme_id,img_url) "
            "VALUES (:set_num,:name,:year,:num_parts,:theme_id,:img_url)",
            row,
        )
        db.commit()
    except sqlite3.IntegrityError as exc:
        db.rollback()
        current_app.logger.warning("add_set %s rejected: %s", row["set_num"], exc)
        raise operation_failed(_integrity_message(exc, row["set_num"])) from exc


def edit_set(set_num: str, data) -> None:
    """Overwrite every column of *set_num*; last write wins."""
    row = _clean({**data, "set_num": set_num})
    db = get_db()
    try:
        cur = db.execute(
            "UPDATE lego_set SET name=:name, year=:year, num_parts=:num_parts, "
            "theme_id=:theme_id, img_url=:img_url WHERE set_num=:set_num",
            row,
        )
        db.commit()
    except sqlite3.IntegrityError as exc:
        db.rollback()
        current_app.logger.warning("edit_set %s rejected: %s", set_num, exc)
        raise operation_failed(_integrity_message(exc, set_num)) from exc
    if cur.rowcount == 0:
        raise operation_failed(f"Unable to find set {set_num} to update")


def delete_set(set_num: str) -> None:
    db = get_db()
    cur = db.execute("DELETE FROM lego_set WHERE set_num=?", (set_num,))
    db.commit()
    if cur.rowcount == 0:
        raise operation_failed(f"Unable to find set {set_num} to delete")


def seed(themes: list[dict], sets: list[dict]) -> tuple[int, int]:
    """
    Bulk-load theme + set records (``themeData.json`` / ``setData.json``
    shaped).  Existing rows with the same key are replaced.
    """
    db = get_db()
    with db:
        db.executemany(
            "INSERT INTO theme (id, name) VALUES (?, ?) "
            "ON CONFLICT(id) DO UPDATE SET name=excluded.name",
            [(int(t["id"]), t["name"]) for t in themes],
        )
        db.executemany(
            "INSERT INTO lego_set (set_num,name,year,num_parts,theme_id,img_url) "
            "VALUES (?,?,?,?,?,?) ON CONFLICT(set_num) DO UPDATE SET "
            "name=excluded.name, year=excluded.year, num_parts=excluded.num_parts, "
            "theme_id=excluded.theme_id, img_url=excluded.img_url",
            [tuple(s.get(k) for k in SET_FIELDS) for s in sets],
        )
    current_app.logger.info("Seeded %d themes and %d sets", len(themes), len(sets))
    return len(themes), len(sets)
