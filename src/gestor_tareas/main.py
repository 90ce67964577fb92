"""FastAPI application wiring for the task list.

Beginner terms used in this file:
- FastAPI app: the main web application object.
- Route/path operation: a function exposed over HTTP (for example, GET /health).
- app.state: a place to store shared runtime objects (settings, storage).
- Redirect 303: "see other"; browsers follow it with a GET after a form POST.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Form, Query, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from .app.auth import (
    current_user_id,
    current_username,
    hash_password,
    login_user,
    logout_user,
    verify_password,
)
from .app.listing import build_listing
from .app.models import CreateTaskRequest, User
from .app.settings import DEFAULT_SESSION_SECRET, Settings, get_settings
from .app.storage import Storage, StorageError, build_storage
from .app.ui import render_auth_page, render_homepage

logger = logging.getLogger(__name__)


class LoginRequired(Exception):
    """Raised by routes that need a session when multi-user mode is on."""


def _ensure_runtime_state(
    app: FastAPI,
    *,
    settings: Settings,
    storage_override: Storage | None,
) -> None:
    if not hasattr(app.state, "settings"):
        app.state.settings = settings

    if not hasattr(app.state, "storage"):
        app.state.storage = storage_override or build_storage(settings.database_url)


def create_app(
    *,
    storage: Storage | None = None,
    settings_override: Settings | None = None,
) -> FastAPI:
    """Application factory.

    Passing `storage` skips backend selection, which lets each test build a
    fresh app around a fresh store.
    """
    settings = settings_override or get_settings()

    # Fail fast: multi-user sessions must not be signed with a public key.
    if settings.auth_enabled and settings.session_secret.strip() in ("", DEFAULT_SESSION_SECRET):
        raise RuntimeError("SESSION_SECRET is required when AUTH_ENABLED is on.")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _ensure_runtime_state(app, settings=settings, storage_override=storage)
        logger.info(
            "app event=startup use_db=%s auth_enabled=%s",
            app.state.storage.use_db,
            settings.auth_enabled,
        )
        yield

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)

    # Keep test paths reliable when lifespan is not executed by the client.
    if storage is not None:
        _ensure_runtime_state(app, settings=settings, storage_override=storage)

    def _get_storage(request: Request) -> Storage:
        if not hasattr(request.app.state, "storage"):
            _ensure_runtime_state(request.app, settings=settings, storage_override=storage)
        return request.app.state.storage

    def _session_user(request: Request) -> User | None:
        """User bound to the session, only if the store still has it under that id.

        A signed cookie outlives the store it was issued against (in-memory ids
        restart at 1), so a stale session is cleared instead of trusted.
        """
        user_id = current_user_id(request)
        username = current_username(request)
        if user_id is None and username is None:
            return None
        user = _get_storage(request).get_user_by_username(username) if username else None
        if user is None or user.id != user_id:
            logger.info("auth event=stale_session user_id=%s", user_id)
            logout_user(request)
            return None
        return user

    def _owner_id(request: Request) -> int | None:
        """Owner for scoping; None when multi-user mode is off."""
        if not settings.auth_enabled:
            return None
        user = _session_user(request)
        if user is None:
            raise LoginRequired()
        return user.id

    @app.exception_handler(LoginRequired)
    async def login_required_handler(request: Request, _exc: LoginRequired) -> Any:
        if request.url.path.startswith("/api/"):
            return JSONResponse(status_code=401, content={"error": "No autenticado"})
        return RedirectResponse("/login", status_code=303)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> Any:
        logger.exception(
            "request event=storage_error method=%s path=%s error=%s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        if request.url.path.startswith("/api/"):
            return JSONResponse(status_code=500, content={"error": "Error interno del servidor"})
        return PlainTextResponse("Error interno del servidor", status_code=500)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> Any:
        # Malformed or mistyped bodies on the JSON create route share its 400 payload.
        if request.method == "POST" and request.url.path == "/api/tareas":
            return JSONResponse(status_code=400, content={"error": "Texto requerido"})
        return await request_validation_exception_handler(request, exc)

    @app.get("/health")
    def health(request: Request) -> dict[str, Any]:
        task_storage = _get_storage(request)
        return {
            "status": "ok",
            "totalTareas": task_storage.count_tasks(),
            "useDb": task_storage.use_db,
        }

    @app.get("/", response_class=HTMLResponse)
    def home(
        request: Request,
        status_filter: str = Query(default="all", alias="filter"),
        q: str = "",
    ) -> str:
        owner_id = _owner_id(request)
        task_storage = _get_storage(request)
        listing = build_listing(task_storage.list_tasks(owner_id), status_filter, q)
        return render_homepage(
            listing,
            app_name=settings.app_name,
            use_db=task_storage.use_db,
            username=current_username(request) if settings.auth_enabled else None,
        )

    @app.post("/tareas")
    def create_task(request: Request, texto: str = Form(default="")) -> RedirectResponse:
        owner_id = _owner_id(request)
        # Blank text is ignored without an error, same as the store contract.
        if texto.strip():
            task = _get_storage(request).create_task(texto, owner_id)
            if task is not None:
                logger.info("task event=created task_id=%s owner_id=%s", task.id, owner_id)
        return RedirectResponse("/", status_code=303)

    @app.post("/tareas/{task_id}/toggle")
    def toggle_task(task_id: str, request: Request) -> RedirectResponse:
        owner_id = _owner_id(request)
        parsed = _parse_task_id(task_id)
        if parsed is not None:
            _get_storage(request).toggle_task(parsed, owner_id)
            logger.info("task event=toggled task_id=%s owner_id=%s", parsed, owner_id)
        return RedirectResponse("/", status_code=303)

    # Both paths delete; /borrar/{id} is the older form action.
    @app.post("/tareas/{task_id}/borrar")
    @app.post("/borrar/{task_id}")
    def delete_task(task_id: str, request: Request) -> RedirectResponse:
        owner_id = _owner_id(request)
        parsed = _parse_task_id(task_id)
        if parsed is not None:
            _get_storage(request).delete_task(parsed, owner_id)
            logger.info("task event=deleted task_id=%s owner_id=%s", parsed, owner_id)
        return RedirectResponse("/", status_code=303)

    @app.get("/api/tareas")
    def api_list_tasks(
        request: Request,
        status_filter: str = Query(default="all", alias="filter"),
        q: str = "",
    ) -> dict[str, Any]:
        owner_id = _owner_id(request)
        task_storage = _get_storage(request)
        listing = build_listing(task_storage.list_tasks(owner_id), status_filter, q)
        return {
            "useDb": task_storage.use_db,
            "count": len(listing.tasks),
            "tareas": [task.model_dump(mode="json") for task in listing.tasks],
        }

    @app.post("/api/tareas")
    def api_create_task(
        request: Request,
        payload: CreateTaskRequest | None = None,
    ) -> JSONResponse:
        owner_id = _owner_id(request)
        texto = payload.texto if payload is not None else None
        task = _get_storage(request).create_task(texto, owner_id) if texto else None
        if task is None:
            return JSONResponse(status_code=400, content={"error": "Texto requerido"})
        logger.info("task event=created task_id=%s owner_id=%s via=api", task.id, owner_id)
        return JSONResponse(status_code=201, content=task.model_dump(mode="json"))

    @app.get("/login", response_class=HTMLResponse, response_model=None)
    def login_form(request: Request) -> Any:
        if not settings.auth_enabled or _session_user(request) is not None:
            return RedirectResponse("/", status_code=303)
        return render_auth_page(mode="login", app_name=settings.app_name)

    @app.post("/login", response_model=None)
    def login(
        request: Request,
        username: str = Form(default=""),
        password: str = Form(default=""),
    ) -> Any:
        if not settings.auth_enabled:
            return RedirectResponse("/", status_code=303)
        username = username.strip()
        user = _get_storage(request).get_user_by_username(username) if username else None
        if user is None:
            return _auth_error("login", "Usuario no encontrado", settings)
        if not verify_password(password, user.password_hash):
            logger.info("auth event=login_rejected username=%s", username)
            return _auth_error("login", "Contraseña incorrecta", settings)
        login_user(request, user)
        logger.info("auth event=login user_id=%s", user.id)
        return RedirectResponse("/", status_code=303)

    @app.get("/register", response_class=HTMLResponse, response_model=None)
    def register_form(request: Request) -> Any:
        if not settings.auth_enabled or _session_user(request) is not None:
            return RedirectResponse("/", status_code=303)
        return render_auth_page(mode="register", app_name=settings.app_name)

    @app.post("/register", response_model=None)
    def register(
        request: Request,
        username: str = Form(default=""),
        password: str = Form(default=""),
    ) -> Any:
        if not settings.auth_enabled:
            return RedirectResponse("/", status_code=303)
        username = username.strip()
        if not username or not password:
            return _auth_error("register", "Usuario y contraseña son obligatorios", settings)
        user = _get_storage(request).create_user(username, hash_password(password))
        if user is None:
            return _auth_error("register", "El usuario ya existe", settings)
        login_user(request, user)
        logger.info("auth event=registered user_id=%s", user.id)
        return RedirectResponse("/", status_code=303)

    @app.get("/logout")
    def logout(request: Request) -> RedirectResponse:
        logout_user(request)
        return RedirectResponse("/login", status_code=303)

    return app


def _parse_task_id(raw: str) -> int | None:
    """Path ids arrive as text; anything non-numeric is ignored."""
    try:
        return int(raw)
    except ValueError:
        return None


def _auth_error(mode: str, message: str, settings: Settings) -> HTMLResponse:
    return HTMLResponse(
        render_auth_page(mode=mode, app_name=settings.app_name, error=message),
        status_code=400,
    )


def run() -> None:
    """Console entrypoint: configure logging and serve on HOST:PORT."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.info("server event=listen host=%s port=%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


# Module-level app for `uvicorn gestor_tareas.main:app`.
app = create_app()
