#!/usr/bin/env python3
"""
Lego set catalog with accounts – the web layer.
"""

import json
import logging
import os
import secrets
import sqlite3
import sys
from collections import defaultdict, deque
from dataclasses import dataclass
from functools import wraps
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from time import time
from typing import ClassVar, DefaultDict, Union

import click
import markdown
from flask import (
    Flask,
    Response,
    abort,
    redirect,
    render_template_string,
    request,
    send_from_directory,
    session,
    url_for,
)
from markupsafe import Markup
from werkzeug.middleware.proxy_fix import ProxyFix
from werkzeug.utils import secure_filename

from . import accounts, catalog
from .accounts import DEFAULT_PROFILE_IMAGE
from .db import close_db
from .errors import ErrorKind, LegoError, operation_failed

################################################################################
# Imports & constants
################################################################################

ROOT = Path(__file__).parent
ENV_FILE = ROOT / ".env"
SECRET_FILE = ROOT / ".secret_key"
IMAGES_DIR = ROOT / "static" / "images"

SESSION_DURATION = 24 * 60 * 60  # seconds, absolute
SESSION_ACTIVE_DURATION = 5 * 60  # seconds, extension window
UPLOAD_MAX_BYTES = 8 * 1024 * 1024
LOGIN_RATE_LIMIT = 10  # POST /login per IP per minute

SORRY = "I'm sorry, but we have encountered the following error: {}"
NOT_FOUND_MESSAGE = "I'm sorry we're unable to find what you're looking for"

try:
    __version__ = version("legosets")
except PackageNotFoundError:
    __version__ = "0.1.0-dev"


def _read_env_file() -> dict[str, str]:
    env = {}
    if not ENV_FILE.exists():
        return env
    for ln in ENV_FILE.read_text().splitlines():
        ln = ln.strip()
        if not ln or ln.startswith("#") or "=" not in ln:
            continue
        k, v = ln.split("=", 1)
        env[k.strip()] = v.strip().strip('"').strip("'")
    return env


_ENV = _read_env_file()


def env(key: str, default: str | None = None) -> str | None:
    """Process environment first, then the .env file, then *default*."""
    return os.environ.get(key) or _ENV.get(key) or default


def _secret_key() -> str:
    configured = env("SECRET_KEY")
    if configured:
        return configured
    if SECRET_FILE.exists():
        return SECRET_FILE.read_text().strip()
    key = secrets.token_hex(32)
    SECRET_FILE.write_text(key)
    return key


################################################################################
# App
################################################################################
app = Flask(__name__, static_folder=None)
app.url_map.strict_slashes = False
app.config.update(
    SECRET_KEY=_secret_key(),
    DATABASE=env("DATABASE", str(ROOT / "legosets.sqlite3")),
    UPLOAD_FOLDER=env("UPLOAD_FOLDER", str(ROOT / "uploads")),
    PORT=int(env("PORT", "3000")),
    MAX_CONTENT_LENGTH=int(env("MAX_CONTENT_LENGTH", str(UPLOAD_MAX_BYTES))),
    SESSION_COOKIE_NAME="session",
    SESSION_COOKIE_SAMESITE="Lax",
    SESSION_COOKIE_HTTPONLY=True,
    SESSION_COOKIE_SECURE=env("SESSION_COOKIE_SECURE", "0") == "1",
    PERMANENT_SESSION_LIFETIME=SESSION_DURATION,
    SESSION_ACTIVE_DURATION=SESSION_ACTIVE_DURATION,
    LOGIN_RATE_LIMIT=LOGIN_RATE_LIMIT,
)
app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)
app.teardown_appcontext(close_db)


@app.template_filter("md")
def md_filter(text: str | None) -> Markup:
    return Markup(markdown.markdown(text or "", extensions=["sane_lists"]))


################################################################################
# Startup
################################################################################
def initialize() -> None:
    """
    Two-phase start: catalog store, then account store.  Raises a
    STARTUP_FAILED :class:`LegoError` naming the phase that broke; nothing
    is served unless this returns.
    """
    phases = (("catalog", catalog.initialize), ("accounts", accounts.initialize))
    try:
        Path(app.config["UPLOAD_FOLDER"]).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise LegoError(
            ErrorKind.STARTUP_FAILED, f"cannot create upload folder: {exc}"
        ) from exc

    with app.app_context():
        for name, step in phases:
            try:
                step()
            except (sqlite3.Error, OSError) as exc:
                raise LegoError(
                    ErrorKind.STARTUP_FAILED, f"{name} initialization failed: {exc}"
                ) from exc


def _cli_initialize() -> None:
    try:
        initialize()
    except LegoError as exc:
        raise click.ClickException(exc.message) from exc


@app.cli.command("init")
def cli_init():
    """Create the catalog and account tables."""
    _cli_initialize()
    click.secho("Database ready.", fg="green")


@app.cli.command("seed")
@click.option("--themes", "themes_file", type=click.File("r"), required=True)
@click.option("--sets", "sets_file", type=click.File("r"), required=True)
def cli_seed(themes_file, sets_file):
    """Load themeData.json / setData.json style files into the catalog."""
    _cli_initialize()
    n_themes, n_sets = catalog.seed(json.load(themes_file), json.load(sets_file))
    click.secho(f"Loaded {n_themes} themes and {n_sets} sets.", fg="green")


@app.cli.command("create-user")
@click.option("--username", prompt=True)
@click.option("--email", prompt=True, default="")
@click.password_option()
def cli_create_user(username: str, email: str, password: str):
    """Register an account without going through /register."""
    _cli_initialize()
    try:
        accounts.register_user(
            {
                "userName": username,
                "email": email,
                "password": password,
                "password2": password,
            }
        )
    except LegoError as exc:
        raise click.ClickException(exc.message) from exc
    click.secho(f"User {username} created.", fg="green")


###############################################################################
# Session context
###############################################################################
@dataclass(frozen=True)
class SessionUser:
    """The projection of an account that lives in the session cookie."""

    user_name: str
    email: str
    profile_image: str
    login_history: tuple

    @classmethod
    def from_record(cls, rec: dict) -> "SessionUser":
        return cls(
            user_name=rec["userName"],
            email=rec.get("email") or "",
            profile_image=rec.get("profileImage") or DEFAULT_PROFILE_IMAGE,
            login_history=tuple(rec.get("loginHistory") or ()),
        )

    def as_session(self) -> dict:
        return {
            "userName": self.user_name,
            "email": self.email,
            "profileImage": self.profile_image,
            "loginHistory": list(self.login_history),
        }


@dataclass(frozen=True)
class Anonymous:
    is_authenticated: ClassVar[bool] = False
    user: ClassVar[None] = None


@dataclass(frozen=True)
class Authenticated:
    user: SessionUser
    is_authenticated: ClassVar[bool] = True


Viewer = Union[Anonymous, Authenticated]


def current_viewer() -> Viewer:
    raw = session.get("user")
    if not isinstance(raw, dict) or not raw.get("userName"):
        return Anonymous()
    return Authenticated(SessionUser.from_record(raw))


def start_session(user: dict) -> SessionUser:
    projected = SessionUser.from_record(user)
    session.clear()
    session.permanent = True
    session["user"] = projected.as_session()
    session["csrf"] = secrets.token_hex(16)
    session["expires_at"] = time() + SESSION_DURATION
    return projected


def with_viewer(view):
    """Call *view* with the current session state as ``viewer``."""

    @wraps(view)
    def wrapped(*args, **kwargs):
        return view(*args, viewer=current_viewer(), **kwargs)

    return wrapped


def login_required(view):
    """Redirect anonymous visitors to /login; the view never runs for them."""

    @wraps(view)
    def wrapped(*args, **kwargs):
        viewer = current_viewer()
        if not viewer.is_authenticated:
            return redirect(url_for("login"))
        return view(*args, viewer=viewer, **kwargs)

    return wrapped


@app.before_request
def session_clock():
    """
    Absolute expiry set at login; a request that lands in the last
    SESSION_ACTIVE_DURATION seconds pushes expiry out by that much.
    """
    if "user" not in session:
        return
    now = time()
    expires_at = session.get("expires_at") or 0
    if now >= expires_at:
        session.clear()
        return
    active = app.config["SESSION_ACTIVE_DURATION"]
    if expires_at - now < active:
        session["expires_at"] = now + active


def rate_limit(max_requests: int | None = None, window: int = 60):
    """Sliding-window limit on POSTs per client IP."""
    hits: DefaultDict[str, deque] = defaultdict(deque)

    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if request.method != "POST":
                return view(*args, **kwargs)
            limit = max_requests or app.config["LOGIN_RATE_LIMIT"]
            now = time()
            # left-most entry after ProxyFix = real client
            ip = (
                request.access_route[0] if request.access_route else request.remote_addr
            ) or "unknown"

            dq = hits[ip]
            while dq and now - dq[0] > window:
                dq.popleft()

            if len(dq) >= limit:
                retry_after = int(window - (now - dq[0]))
                return Response(
                    "Too many requests – try again later.",
                    status=429,
                    headers={"Retry-After": str(retry_after)},
                )

            dq.append(now)
            return view(*args, **kwargs)

        return wrapped

    return decorator


SAFE_METHODS = {"GET", "HEAD", "OPTIONS", "TRACE"}


def _csrf_token() -> str:
    return session.get("csrf", "")


app.jinja_env.globals["csrf_token"] = _csrf_token
app.jinja_env.globals["version"] = __version__


@app.before_request
def csrf_protect():
    if request.method in SAFE_METHODS:
        return
    # anonymous POSTs (/login, /register) have no token to compare against
    if "user" not in session:
        return
    token = session.get("csrf", "")
    sent = request.form.get("csrf") or request.headers.get("X-CSRFToken", "")
    if not token or not secrets.compare_digest(token, sent):
        abort(403)


@app.after_request
def sec_headers(resp):
    resp.headers.update(
        {
            "X-Frame-Options": "DENY",
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "strict-origin-when-cross-origin",
        }
    )
    return resp


###############################################################################
# Rendering helpers
###############################################################################
def render_view(name: str, *, viewer: Viewer, status: int = 200, **ctx):
    """Render one of the named views with the nav chrome filled in."""
    ctx.setdefault("page", "")
    html = render_template_string(VIEWS[name], view=name, user=viewer.user, **ctx)
    return html, status


def sorry(viewer: Viewer, exc: LegoError):
    """
    The 500 view for a failed catalog operation.  Always sent with status
    500, the failed add / edit / delete POSTs included.
    """
    return render_view(
        "500", viewer=viewer, status=500, message=SORRY.format(exc.message)
    )


def not_found_view(viewer: Viewer, exc: LegoError):
    return render_view("404", viewer=viewer, status=404, message=exc.message)


def raw_listing_failure(exc: LegoError) -> Response:
    """
    The unfiltered listing reports failure as bare text, not the 500 view.
    Kept apart from the filtered branch on purpose.
    """
    return Response(exc.message, status=500, mimetype="text/plain")


def _store(fn, *args):
    """Run a store call, turning driver errors into OPERATION_FAILED."""
    try:
        return fn(*args)
    except sqlite3.Error as exc:
        app.logger.exception("%s failed", fn.__name__)
        raise operation_failed("The catalog is currently unavailable") from exc


def profile_filename(user_name: str | None, original: str) -> str:
    """
    ``profile-<userName><ext>``, timestamp when no userName was sent.
    Two uploads for the same userName land on the same file.
    """
    stem = (user_name or "").strip() or str(int(time() * 1000))
    ext = Path(original).suffix.lower()
    return secure_filename(f"profile-{stem}{ext}")


###############################################################################
# Static-ish routes
###############################################################################
@app.route("/uploads/<path:filename>")
def uploaded_file(filename):
    return send_from_directory(app.config["UPLOAD_FOLDER"], filename)


@app.route("/images/<path:filename>")
def image_file(filename):
    return send_from_directory(IMAGES_DIR, filename)


###############################################################################
# Pages
###############################################################################
@app.route("/")
@with_viewer
def home(viewer):
    return render_view("home", viewer=viewer, page="/")


@app.route("/about")
@with_viewer
def about(viewer):
    return render_view("about", viewer=viewer, page="/about", about_md=ABOUT_MD)


###############################################################################
# Catalog
###############################################################################
@app.route("/lego/sets")
@with_viewer
def lego_sets(viewer):
    theme = request.args.get("theme")
    if theme:
        try:
            sets = _store(catalog.get_sets_by_theme, theme)
        except LegoError as exc:
            return not_found_view(viewer, exc)
        return render_view(
            "sets", viewer=viewer, sets=sets, theme=theme, page="/lego/sets"
        )

    try:
        sets = _store(catalog.get_all_sets)
    except LegoError as exc:
        return raw_listing_failure(exc)
    return render_view("sets", viewer=viewer, sets=sets, theme=None, page="/lego/sets")


@app.route("/lego/sets/<set_num>")
@with_viewer
def lego_set(set_num, viewer):
    try:
        lego = _store(catalog.get_set_by_num, set_num)
    except LegoError as exc:
        return not_found_view(viewer, exc)
    return render_view("set", viewer=viewer, lego=lego, page=f"/lego/sets/{set_num}")


@app.route("/lego/addSet", methods=["GET"])
@login_required
def add_set_form(viewer):
    try:
        themes = _store(catalog.get_all_themes)
    except LegoError as exc:
        return sorry(viewer, exc)
    return render_view("addSet", viewer=viewer, themes=themes, page="/lego/addSet")


@app.route("/lego/addSet", methods=["POST"])
@login_required
def add_set(viewer):
    try:
        _store(catalog.add_set, request.form)
    except LegoError as exc:
        return sorry(viewer, exc)
    app.logger.info("%s added set %s", viewer.user.user_name, request.form.get("set_num"))
    return redirect(url_for("lego_sets"))


@app.route("/lego/editSet/<num>", methods=["GET"])
@login_required
def edit_set_form(num, viewer):
    # both lookups must succeed; either failure is a 404
    try:
        themes = _store(catalog.get_all_themes)
        lego = _store(catalog.get_set_by_num, num)
    except LegoError as exc:
        return not_found_view(viewer, exc)
    return render_view(
        "editSet", viewer=viewer, themes=themes, lego=lego, page="/lego/editSet"
    )


@app.route("/lego/editSet", methods=["POST"])
@app.route("/lego/editSet/<num>", methods=["POST"])
@login_required
def edit_set(viewer, num=None):
    set_num = request.form.get("set_num") or num or ""
    try:
        _store(catalog.edit_set, set_num, request.form)
    except LegoError as exc:
        return sorry(viewer, exc)
    app.logger.info("%s edited set %s", viewer.user.user_name, set_num)
    return redirect(url_for("lego_sets"))


@app.route("/lego/deleteSet/<num>")
@login_required
def delete_set(num, viewer):
    try:
        _store(catalog.delete_set, num)
    except LegoError as exc:
        return sorry(viewer, exc)
    app.logger.info("%s deleted set %s", viewer.user.user_name, num)
    return redirect(url_for("lego_sets"))


###############################################################################
# Accounts
###############################################################################
@app.route("/login", methods=["GET", "POST"])
@rate_limit()
@with_viewer
def login(viewer):
    if request.method == "GET":
        return render_view(
            "login", viewer=viewer, errorMessage=None, userName="", page="/login"
        )

    creds = {
        "userName": request.form.get("userName", ""),
        "password": request.form.get("password", ""),
        "userAgent": request.headers.get("User-Agent", ""),
    }
    try:
        user = accounts.check_user(creds)
    except LegoError as exc:
        return render_view(
            "login",
            viewer=viewer,
            errorMessage=exc.message,
            userName=creds["userName"],
            page="/login",
        )

    projected = start_session(user)
    app.logger.info("User %s logged in", projected.user_name)
    return redirect(url_for("lego_sets"))


@app.route("/register", methods=["GET", "POST"])
@with_viewer
def register(viewer):
    blank = dict(errorMessage=None, successMessage=None, userName="", email="")
    if request.method == "GET":
        return render_view("register", viewer=viewer, page="/register", **blank)

    data = request.form.to_dict()
    upload = request.files.get("image")
    if upload and upload.filename:
        filename = profile_filename(data.get("userName"), upload.filename)
        app.logger.info("Uploading file as: %s", filename)
        upload.save(Path(app.config["UPLOAD_FOLDER"]) / filename)
        data["profileImage"] = f"/uploads/{filename}"
    else:
        data["profileImage"] = DEFAULT_PROFILE_IMAGE
    app.logger.info("Profile image for %s: %s", data.get("userName"), data["profileImage"])

    try:
        accounts.register_user(data)
    except LegoError as exc:
        app.logger.warning("Registration of %s failed: %s", data.get("userName"), exc)
        return render_view(
            "register",
            viewer=viewer,
            page="/register",
            errorMessage=exc.message,
            successMessage=None,
            userName=data.get("userName", ""),
            email=data.get("email", ""),
        )

    return render_view(
        "register",
        viewer=viewer,
        page="/register",
        **{**blank, "successMessage": "User created successfully!"},
    )


@app.route("/logout")
def logout():
    session.clear()
    return redirect(url_for("home"))


@app.route("/userHistory")
@login_required
def user_history(viewer):
    return render_view("userHistory", viewer=viewer, page="/userHistory")


###############################################################################
# Errors
###############################################################################
@app.errorhandler(404)
@app.errorhandler(405)
def not_found(exc):
    """Unknown path, or a known path with a verb it does not take."""
    return render_view(
        "404", viewer=current_viewer(), status=404, message=NOT_FOUND_MESSAGE
    )


@app.errorhandler(413)
def too_large(exc):
    if request.endpoint != "register":
        return render_view(
            "500",
            viewer=current_viewer(),
            status=413,
            message=SORRY.format("the request is too large"),
        )
    return render_view(
        "register",
        viewer=current_viewer(),
        status=413,
        page="/register",
        errorMessage="The profile image is too large.",
        successMessage=None,
        userName="",
        email="",
    )


@app.errorhandler(500)
def internal_error(exc):
    app.logger.error("Unhandled error on %s: %r", request.path, exc)
    return render_view(
        "500",
        viewer=current_viewer(),
        status=500,
        message="Our fault, not yours. Please try again in a minute.",
    )


###############################################################################
# Templates
###############################################################################
def wrap(body: str) -> str:
    """Glue prolog + page-specific body + epilog."""
    return TEMPL_PROLOG + body + TEMPL_EPILOG


TEMPL_PROLOG = """
<!doctype html>
<html lang="en">
<title>{{ title or 'Lego Collection' }}</title>
<meta name="viewport" content="width=device-width, initial-scale=1">
<meta charset="utf-8">
<style>
body{font-family:-apple-system,BlinkMacSystemFont,"Segoe UI",Roboto,Arial,sans-serif;max-width:60em;margin:auto;padding:13px;color:#222;background:#fafafa;line-height:1.5}
nav{display:flex;gap:1rem;align-items:center;border-bottom:1px solid #ddd;padding-bottom:.5rem;margin-bottom:1.5rem}
nav a{color:#333;text-decoration:none}nav a[aria-current=page]{font-weight:700;border-bottom:2px solid #d01012}
nav .me{margin-left:auto;display:flex;gap:.6rem;align-items:center}
.avatar{width:32px;height:32px;border-radius:50%;object-fit:cover}
table{width:100%;border-collapse:collapse}td,th{padding:.4em;border-bottom:1px solid #ddd;text-align:left}
label{display:block;font-weight:600;margin-top:.6rem}input,select{padding:6px 10px;min-width:18em}
.alert{padding:.6rem 1rem;border-radius:4px;margin-bottom:1rem}
.alert-error{background:#fde2e2;color:#8a1010}.alert-ok{background:#e2f5e5;color:#14602a}
.set-img{max-width:100%;max-height:24em}
</style>
<body>
<nav aria-label="Main">
  <a href="{{ url_for('home') }}" {% if page == '/' %}aria-current="page"{% endif %}>Home</a>
  <a href="{{ url_for('about') }}" {% if page == '/about' %}aria-current="page"{% endif %}>About</a>
  <a href="{{ url_for('lego_sets') }}" {% if page == '/lego/sets' %}aria-current="page"{% endif %}>Collection</a>
  {% if user %}
  <a href="{{ url_for('add_set_form') }}" {% if page == '/lego/addSet' %}aria-current="page"{% endif %}>Add Set</a>
  {% endif %}
  <span class="me">
  {% if user %}
    <img class="avatar" src="{{ user.profile_image }}" alt="">
    <a href="{{ url_for('user_history') }}" {% if page == '/userHistory' %}aria-current="page"{% endif %}>{{ user.user_name }}</a>
    <a href="{{ url_for('logout') }}">Log out</a>
  {% else %}
    <a href="{{ url_for('login') }}" {% if page == '/login' %}aria-current="page"{% endif %}>Log in</a>
    <a href="{{ url_for('register') }}" {% if page == '/register' %}aria-current="page"{% endif %}>Register</a>
  {% endif %}
  </span>
</nav>
<main data-view="{{ view }}">
"""

TEMPL_EPILOG = """
</main>
<footer style="margin-top:2rem;padding-top:1rem;border-top:1px solid #ddd;font-size:.8em;color:#888;">
  legosets v{{ version }}
</footer>
</body>
</html>
"""

ABOUT_MD = """
## About this collection

A small catalog of **Lego sets**, grouped by theme.

- Browse everything under *Collection*, or narrow it down with a theme.
- Registered users can add, edit and delete sets.
- Every login is kept in your *history*.
"""

_SET_FORM_FIELDS = """
  <label for="name">Name</label>
  <input id="name" name="name" required value="{{ lego['name'] if lego else '' }}">
  <label for="year">Year</label>
  <input id="year" name="year" type="number" value="{{ lego['year'] if lego and lego['year'] is not none else '' }}">
  <label for="num_parts">Number of parts</label>
  <input id="num_parts" name="num_parts" type="number" value="{{ lego['num_parts'] if lego and lego['num_parts'] is not none else '' }}">
  <label for="img_url">Image URL</label>
  <input id="img_url" name="img_url" value="{{ lego['img_url'] or '' if lego else '' }}">
  <label for="theme_id">Theme</label>
  <select id="theme_id" name="theme_id">
    {% for t in themes %}
      <option value="{{ t['id'] }}" {% if lego and lego['theme_id'] == t['id'] %}selected{% endif %}>{{ t['name'] }}</option>
    {% endfor %}
  </select>
  {% if csrf_token() %}
  <input type="hidden" name="csrf" value="{{ csrf_token() }}">
  {% endif %}
"""

TEMPL_HOME = wrap("""
{% block body %}
<h1>Lego Collection</h1>
<p>Sets from every era, sorted by theme.</p>
<p><a href="{{ url_for('lego_sets') }}">Browse the collection</a></p>
{% endblock %}
""")

TEMPL_ABOUT = wrap("""
{% block body %}
{{ about_md|md }}
{% endblock %}
""")

TEMPL_SETS = wrap("""
{% block body %}
<h1>{% if theme %}Sets matching “{{ theme }}”{% else %}All sets{% endif %}</h1>
{% if theme %}<p><a href="{{ url_for('lego_sets') }}">Show all</a></p>{% endif %}
<table>
  <tr><th>Set</th><th>Name</th><th>Year</th><th>Theme</th><th>Parts</th>{% if user %}<th></th>{% endif %}</tr>
  {% for s in sets %}
  <tr>
    <td><a href="{{ url_for('lego_set', set_num=s['set_num']) }}">{{ s['set_num'] }}</a></td>
    <td>{{ s['name'] }}</td>
    <td>{{ s['year'] if s['year'] is not none else '' }}</td>
    <td>{% if s['theme'] %}<a href="{{ url_for('lego_sets', theme=s['theme']) }}">{{ s['theme'] }}</a>{% endif %}</td>
    <td>{{ s['num_parts'] if s['num_parts'] is not none else '' }}</td>
    {% if user %}
    <td><a href="{{ url_for('edit_set_form', num=s['set_num']) }}">Edit</a></td>
    {% endif %}
  </tr>
  {% else %}
  <tr><td colspan="5">No sets yet.</td></tr>
  {% endfor %}
</table>
{% endblock %}
""")

TEMPL_SET = wrap("""
{% block body %}
<h1>{{ lego['name'] }}</h1>
{% if lego['img_url'] %}<img class="set-img" src="{{ lego['img_url'] }}" alt="{{ lego['name'] }}">{% endif %}
<table>
  <tr><th>Set number</th><td class="set-num">{{ lego['set_num'] }}</td></tr>
  <tr><th>Year</th><td class="set-year">{{ lego['year'] if lego['year'] is not none else '' }}</td></tr>
  <tr><th>Theme</th><td class="set-theme">{{ lego['theme'] or '' }}</td></tr>
  <tr><th>Parts</th><td class="set-parts">{{ lego['num_parts'] if lego['num_parts'] is not none else '' }}</td></tr>
</table>
<p>
  <a href="javascript:history.back()">Back</a>
  {% if user %}
  · <a href="{{ url_for('edit_set_form', num=lego['set_num']) }}">Edit</a>
  · <a href="{{ url_for('delete_set', num=lego['set_num']) }}">Delete</a>
  {% endif %}
</p>
{% endblock %}
""")

TEMPL_ADD_SET = wrap("""
{% block body %}
<h1>Add a set</h1>
<form method="post" action="{{ url_for('add_set') }}">
  <label for="set_num">Set number</label>
  <input id="set_num" name="set_num" required>
""" + _SET_FORM_FIELDS + """
  <p><button type="submit">Add set</button></p>
</form>
{% endblock %}
""")

TEMPL_EDIT_SET = wrap("""
{% block body %}
<h1>Edit {{ lego['name'] }}</h1>
<form method="post" action="{{ url_for('edit_set') }}">
  <label for="set_num">Set number</label>
  <input id="set_num" name="set_num" readonly value="{{ lego['set_num'] }}">
""" + _SET_FORM_FIELDS + """
  <p><button type="submit">Save</button>
     <a href="{{ url_for('delete_set', num=lego['set_num']) }}">Delete this set</a></p>
</form>
{% endblock %}
""")

TEMPL_LOGIN = wrap("""
{% block body %}
<h1>Log in</h1>
{% if errorMessage %}<div class="alert alert-error" role="alert">{{ errorMessage }}</div>{% endif %}
<form method="post" action="{{ url_for('login') }}">
  {% if csrf_token() %}
  <input type="hidden" name="csrf" value="{{ csrf_token() }}">
  {% endif %}
  <label for="userName">User name</label>
  <input id="userName" name="userName" required value="{{ userName }}">
  <label for="password">Password</label>
  <input id="password" name="password" type="password" required autocomplete="current-password">
  <p><button type="submit">Log in</button></p>
</form>
{% endblock %}
""")

TEMPL_REGISTER = wrap("""
{% block body %}
<h1>Register</h1>
{% if successMessage %}<div class="alert alert-ok" role="status">{{ successMessage }}
  <a href="{{ url_for('login') }}">Log in</a></div>{% endif %}
{% if errorMessage %}<div class="alert alert-error" role="alert">{{ errorMessage }}</div>{% endif %}
<form method="post" action="{{ url_for('register') }}" enctype="multipart/form-data">
  {% if csrf_token() %}
  <input type="hidden" name="csrf" value="{{ csrf_token() }}">
  {% endif %}
  <label for="userName">User name</label>
  <input id="userName" name="userName" required value="{{ userName }}">
  <label for="email">Email</label>
  <input id="email" name="email" type="email" value="{{ email }}">
  <label for="password">Password</label>
  <input id="password" name="password" type="password" required autocomplete="new-password">
  <label for="password2">Confirm password</label>
  <input id="password2" name="password2" type="password" required autocomplete="new-password">
  <label for="image">Profile image</label>
  <input id="image" name="image" type="file" accept="image/*">
  <p><button type="submit">Register</button></p>
</form>
{% endblock %}
""")

TEMPL_USER_HISTORY = wrap("""
{% block body %}
<h1><img class="avatar" src="{{ user.profile_image }}" alt=""> {{ user.user_name }}</h1>
<p>{{ user.email }}</p>
<h2>Login history</h2>
<table>
  <tr><th>When</th><th>Client</th></tr>
  {% for h in user.login_history %}
  <tr><td>{{ h['dateTime'] }}</td><td>{{ h['userAgent'] }}</td></tr>
  {% endfor %}
</table>
{% endblock %}
""")

TEMPL_404 = wrap("""
{% block body %}
<h1>Page not found</h1>
<p class="message">{{ message }}</p>
<p><a href="{{ url_for('home') }}">Back to the front page</a></p>
{% endblock %}
""")

TEMPL_500 = wrap("""
{% block body %}
<h1>Internal Server Error</h1>
<p class="message">{{ message }}</p>
<p><a href="{{ url_for('home') }}">Back to the front page</a></p>
{% endblock %}
""")

VIEWS = {
    "home": TEMPL_HOME,
    "about": TEMPL_ABOUT,
    "sets": TEMPL_SETS,
    "set": TEMPL_SET,
    "addSet": TEMPL_ADD_SET,
    "editSet": TEMPL_EDIT_SET,
    "login": TEMPL_LOGIN,
    "register": TEMPL_REGISTER,
    "userHistory": TEMPL_USER_HISTORY,
    "404": TEMPL_404,
    "500": TEMPL_500,
}


###############################################################################
# main
###############################################################################
def main() -> int:
    app.logger.setLevel(logging.INFO)
    try:
        initialize()
    except LegoError as exc:
        app.logger.error("Unable to start server: %s", exc)
        return 1

    port = int(app.config["PORT"])
    app.logger.info("Initialization successful")
    app.logger.info("Server is running on port %d", port)
    app.run(host=env("HOST", "127.0.0.1"), port=port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
