"""Browser-facing routes for registration, login and the dashboard."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import anyio
from fastapi import FastAPI, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.datastructures import FormData, UploadFile
from starlette.middleware.sessions import SessionMiddleware

from .application import ApplicationContext
from .database import PersistenceError
from .flash import Notices, messages_in
from .models import User
from .security import HashingError
from .sessions import AuthFailure
from .uploads import PROFILE_PICTURE_FIELD, StorageError


TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
STATIC_DIR = Path(__file__).resolve().parent / "static"

SESSION_COOKIE_NAME = "userauth_session"
SESSION_TOKEN_KEY = "session_token"

REGISTRATION_SUCCESS = "Registration successful! You can now log in."
REGISTRATION_ERROR = "An error occurred during registration."
REGISTRATION_FIELDS_MISSING = "Name, email and password are required."
LOGIN_FAILED = "Incorrect email or password."
LOGIN_FIELDS_MISSING = "Please provide both email and password."
LOGIN_ERROR = "An error occurred while signing in."
LOGIN_REQUIRED = "Please log in to access the dashboard."
LOGGED_OUT = "You have been logged out."


logger = logging.getLogger("userauth.web")


class ValidationError(ValueError):
    """Raised when a submitted form is missing required fields."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required fields: {', '.join(self.missing)}")


def _form_text(form: FormData, key: str) -> str:
    value = form.get(key)
    if isinstance(value, str):
        return value
    return ""


def _require_fields(form: FormData, names: Sequence[str]) -> List[str]:
    values = [_form_text(form, name) for name in names]
    missing = [name for name, value in zip(names, values) if not value.strip()]
    if missing:
        raise ValidationError(missing)
    return values


def _form_upload(form: FormData, key: str) -> Optional[UploadFile]:
    value = form.get(key)
    if isinstance(value, UploadFile) and value.filename:
        return value
    return None


def create_app(context: ApplicationContext) -> FastAPI:
    """Create the web application around an already wired context."""

    settings = context.settings
    if not settings.session_secret:
        raise RuntimeError(
            "USERAUTH_SESSION_SECRET must be configured to serve the web interface"
        )

    database = context.database
    identity = context.identity
    uploads = context.uploads

    app = FastAPI(
        title="User Accounts",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.context = context

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=SESSION_COOKIE_NAME,
        https_only=settings.secure_cookies,
        same_site="lax",
        max_age=identity.sessions.cookie_max_age,
    )

    uploads.directory.mkdir(parents=True, exist_ok=True)
    app.mount(
        "/profile-pics",
        StaticFiles(directory=str(uploads.directory), check_dir=False),
        name="profile_pics",
    )
    if STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    templates = Jinja2Templates(directory=str(TEMPLATE_DIR))

    def _redirect(request: Request, route: str) -> RedirectResponse:
        return RedirectResponse(
            request.url_for(route),
            status_code=status.HTTP_303_SEE_OTHER,
        )

    async def _get_current_user(request: Request) -> Optional[User]:
        token = request.session.get(SESSION_TOKEN_KEY)
        if not isinstance(token, str):
            return None
        user = await identity.current_user(token)
        if user is None:
            request.session.pop(SESSION_TOKEN_KEY, None)
        return user

    def _render(request: Request, template: str):
        messages = Notices(request.session).consume()
        return templates.TemplateResponse(request, template, {"messages": messages})

    @app.get("/", response_class=HTMLResponse, name="landing")
    async def landing(request: Request):
        return _render(request, "index.html")

    @app.get("/login", response_class=HTMLResponse, name="show_login")
    async def login_form(request: Request):
        return _render(request, "login.html")

    @app.post("/register", name="register")
    async def register(request: Request):
        notices = Notices(request.session)
        form = await request.form()

        try:
            name, email, password = _require_fields(form, ("name", "email", "password"))
        except ValidationError as exc:
            logger.info("Rejected registration: %s", exc)
            notices.error(REGISTRATION_FIELDS_MISSING)
            return _redirect(request, "landing")

        stored_picture = ""
        try:
            stored_picture = await uploads.store(_form_upload(form, PROFILE_PICTURE_FIELD))
            password_hash = await context.hasher.hash_async(password)
            user = await anyio.to_thread.run_sync(
                database.create_user, name, email, password_hash, stored_picture
            )
        except (StorageError, HashingError, PersistenceError):
            logger.exception("Registration failed for %s", email)
            await uploads.discard(stored_picture)
            notices.error(REGISTRATION_ERROR)
            return _redirect(request, "landing")

        logger.info("Registered user %s", user.id)
        notices.success(REGISTRATION_SUCCESS)
        return _redirect(request, "show_login")

    @app.post("/login", name="process_login")
    async def process_login(request: Request):
        notices = Notices(request.session)
        form = await request.form()
        email = _form_text(form, "email")
        password = _form_text(form, "password")
        if not email or not password:
            notices.error(LOGIN_FIELDS_MISSING)
            return _redirect(request, "show_login")

        try:
            user = await identity.authenticate(email, password)
        except AuthFailure as exc:
            logger.warning("Failed login attempt for %s: %s", email, exc.reason)
            notices.error(LOGIN_FAILED)
            return _redirect(request, "show_login")
        except PersistenceError:
            logger.exception("Login failed for %s", email)
            notices.error(LOGIN_ERROR)
            return _redirect(request, "show_login")

        identity.end_session(request.session.pop(SESSION_TOKEN_KEY, None))
        request.session[SESSION_TOKEN_KEY] = identity.establish_session(user)
        return _redirect(request, "dashboard")

    @app.get("/dashboard", response_class=HTMLResponse, name="dashboard")
    async def dashboard(request: Request):
        notices = Notices(request.session)
        try:
            user = await _get_current_user(request)
        except PersistenceError:
            logger.exception("Unable to load the signed-in user")
            user = None

        if user is None:
            notices.error(LOGIN_REQUIRED)
            return _redirect(request, "show_login")

        messages = notices.consume()
        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {
                "user": user,
                "messages": [item for item in messages if item.get("category") != "error"],
                "errorMessage": messages_in(messages, "error"),
                "profilePicture": user.profile_picture,
            },
        )

    @app.get("/logout", name="logout")
    async def logout(request: Request):
        identity.end_session(request.session.pop(SESSION_TOKEN_KEY, None))
        Notices(request.session).success(LOGGED_OUT)
        logger.info("Session ended")
        return _redirect(request, "show_login")

    return app


__all__ = ["ValidationError", "create_app"]
