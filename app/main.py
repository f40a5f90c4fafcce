"""Entry point for the FastAPI-powered movie catalog and player."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from pydantic import BaseModel, ValidationError

from .config import Settings, settings
from .database import Database
from .filtering import FilterResult
from .middleware import BotBlockerMiddleware
from .models import (
    ALL_CATEGORY,
    EpisodeRequest,
    FilterRequest,
    MediaSignalRequest,
    PasswordRequest,
    PopupCloseRequest,
    SelectRequest,
)
from .services.catalog_source import load_catalog
from .services.flags import DatabaseFlagStore
from .services.gate import (
    EpisodeNotFoundError,
    GateError,
    ItemNotFoundError,
)
from .services.notifications import PopupName
from .services.sessions import BrowsingSession, SessionRegistry
from .web import render_listing_page, render_player_page

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

VISITOR_COOKIE_MAX_AGE = 365 * 24 * 60 * 60

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    app_settings = get_settings_for(fastapi_app)
    catalog = await load_catalog(app_settings.catalog_source)
    database = Database(app_settings.database_url)
    await database.create_all()

    registry = SessionRegistry(
        catalog,
        DatabaseFlagStore(database.session_factory),
        notification_seconds=app_settings.notification_seconds,
        idle_seconds=app_settings.session_idle_seconds,
        autoplay=app_settings.autoplay,
    )
    fastapi_app.state.session_registry = registry
    fastapi_app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        registry.close_all()
        await database.dispose()


def create_app(app_settings: Settings | None = None) -> FastAPI:
    resolved_settings = app_settings or settings
    fastapi_app = FastAPI(
        title=resolved_settings.app_name,
        description="Browse a static movie catalog and play titles in the browser",
        version="1.0.0",
        lifespan=lifespan,
    )
    fastapi_app.state.settings = resolved_settings

    fastapi_app.add_middleware(
        BotBlockerMiddleware,
        blocked_user_agents=resolved_settings.blocked_user_agents,
        blocked_ips=resolved_settings.blocked_ips,
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_settings_for(fastapi_app: FastAPI) -> Settings:
    configured = getattr(fastapi_app.state, "settings", None)
    if isinstance(configured, Settings):
        return configured
    return settings


def get_session_registry(fastapi_app: FastAPI) -> SessionRegistry:
    registry = getattr(fastapi_app.state, "session_registry", None)
    if not isinstance(registry, SessionRegistry):
        raise RuntimeError("Session registry not initialised")
    return registry


def register_routes(fastapi_app: FastAPI) -> None:
    async def _resolve_session(request: Request) -> tuple[BrowsingSession, bool]:
        registry = get_session_registry(fastapi_app)
        cookie_name = get_settings_for(fastapi_app).session_cookie
        return await registry.resolve(request.cookies.get(cookie_name))

    def _finish(response: Response, session: BrowsingSession, created: bool) -> Response:
        if created:
            response.set_cookie(
                get_settings_for(fastapi_app).session_cookie,
                session.id,
                max_age=VISITOR_COOKIE_MAX_AGE,
                httponly=True,
                samesite="lax",
            )
        return response

    def _session_json(
        session: BrowsingSession,
        created: bool,
        extra: dict[str, Any] | None = None,
    ) -> Response:
        payload = session.to_payload()
        if extra:
            payload.update(extra)
        return _finish(JSONResponse(payload), session, created)

    def _results_json(
        session: BrowsingSession, created: bool, result: FilterResult
    ) -> Response:
        payload = {
            **result.to_payload(),
            "categories": list(session.catalog.categories),
            "notification": session.notifier.to_payload(),
        }
        return _finish(JSONResponse(payload), session, created)

    async def _read_model(request: Request, model: type[ModelT]) -> ModelT:
        try:
            payload = await request.json()
        except ValueError:  # invalid JSON or undecodable bytes
            payload = {}
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(
                status_code=400,
                detail=exc.errors(include_url=False, include_context=False),
            ) from exc

    def _gate_error(exc: GateError) -> HTTPException:
        if isinstance(exc, (ItemNotFoundError, EpisodeNotFoundError)):
            status_code = 404
            error = "item_not_found" if isinstance(exc, ItemNotFoundError) else "episode_not_found"
        else:
            status_code = 409
            error = "invalid_transition"
        return HTTPException(
            status_code=status_code,
            detail={"error": error, "description": str(exc)},
        )

    def _popup_name(raw: str) -> PopupName:
        try:
            return PopupName(raw)
        except ValueError as exc:
            raise HTTPException(status_code=404, detail="Unknown popup") from exc

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/", response_class=HTMLResponse)
    async def listing_page(
        request: Request, q: str = "", category: str = ALL_CATEGORY
    ) -> Response:
        session, created = await _resolve_session(request)
        view_id = session.begin_view()
        session.close_player()
        result = session.apply_filter(q, category)
        html = render_listing_page(
            get_settings_for(fastapi_app),
            result=result,
            categories=session.catalog.categories,
            state=session.to_payload(),
            view_id=view_id,
        )
        return _finish(HTMLResponse(html), session, created)

    @fastapi_app.get("/v/{item_id}", response_class=HTMLResponse)
    async def player_page(request: Request, item_id: str) -> Response:
        session, created = await _resolve_session(request)
        item = session.catalog.get(item_id)
        if item is None:
            logger.info("Unknown catalog item %r requested, redirecting home", item_id)
            return _finish(RedirectResponse("/", status_code=303), session, created)

        session.select(item.id)
        view_id = session.begin_view()
        html = render_player_page(
            get_settings_for(fastapi_app),
            item=item,
            state=session.to_payload(),
            view_id=view_id,
        )
        return _finish(HTMLResponse(html), session, created)

    @fastapi_app.get("/api/catalog")
    async def catalog_endpoint(
        request: Request, q: str | None = None, category: str | None = None
    ) -> Response:
        session, created = await _resolve_session(request)
        if q is None and category is None:
            result = session.current_results()
        else:
            result = session.apply_filter(q or "", category or ALL_CATEGORY)
        return _results_json(session, created, result)

    @fastapi_app.get("/api/items/{item_id}")
    async def item_endpoint(item_id: str) -> dict[str, Any]:
        item = get_session_registry(fastapi_app).catalog.get(item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="Catalog item not found")
        return item.to_public_payload()

    @fastapi_app.get("/api/session")
    async def session_state(request: Request) -> Response:
        session, created = await _resolve_session(request)
        return _session_json(session, created)

    @fastapi_app.post("/api/session/filter")
    async def filter_endpoint(request: Request) -> Response:
        body = await _read_model(request, FilterRequest)
        session, created = await _resolve_session(request)
        result = session.apply_filter(body.query, body.category)
        return _results_json(session, created, result)

    @fastapi_app.post("/api/session/filter/clear")
    async def clear_filter_endpoint(request: Request) -> Response:
        session, created = await _resolve_session(request)
        return _results_json(session, created, session.clear_filters())

    @fastapi_app.post("/api/session/select")
    async def select_endpoint(request: Request) -> Response:
        body = await _read_model(request, SelectRequest)
        session, created = await _resolve_session(request)
        try:
            session.select(body.item_id)
        except GateError as exc:
            raise _gate_error(exc) from exc
        return _session_json(session, created)

    @fastapi_app.post("/api/session/password")
    async def password_endpoint(request: Request) -> Response:
        body = await _read_model(request, PasswordRequest)
        session, created = await _resolve_session(request)
        try:
            granted = session.submit_password(body.password)
        except GateError as exc:
            raise _gate_error(exc) from exc
        return _session_json(session, created, {"granted": granted})

    @fastapi_app.post("/api/session/play")
    async def play_endpoint(request: Request) -> Response:
        session, created = await _resolve_session(request)
        try:
            session.play()
        except GateError as exc:
            raise _gate_error(exc) from exc
        return _session_json(session, created)

    @fastapi_app.post("/api/session/episode")
    async def episode_endpoint(request: Request) -> Response:
        body = await _read_model(request, EpisodeRequest)
        session, created = await _resolve_session(request)
        try:
            session.select_episode(body.episode_id)
        except GateError as exc:
            raise _gate_error(exc) from exc
        return _session_json(session, created)

    @fastapi_app.post("/api/session/media")
    async def media_endpoint(request: Request) -> Response:
        body = await _read_model(request, MediaSignalRequest)
        session, created = await _resolve_session(request)
        applied = session.report_media(body.token, body.event)
        return _session_json(session, created, {"applied": applied})

    @fastapi_app.post("/api/session/close")
    async def close_endpoint(request: Request) -> Response:
        session, created = await _resolve_session(request)
        session.close_player()
        return _session_json(session, created)

    @fastapi_app.post("/api/session/notification/dismiss")
    async def dismiss_notification(request: Request) -> Response:
        session, created = await _resolve_session(request)
        session.notifier.dismiss()
        return _session_json(session, created)

    @fastapi_app.post("/api/session/popups/{name}/open")
    async def open_popup(request: Request, name: str) -> Response:
        popup = _popup_name(name)
        session, created = await _resolve_session(request)
        session.open_popup(popup)
        return _session_json(session, created)

    @fastapi_app.post("/api/session/popups/{name}/close")
    async def close_popup(request: Request, name: str) -> Response:
        popup = _popup_name(name)
        body = await _read_model(request, PopupCloseRequest)
        session, created = await _resolve_session(request)
        closed = await session.close_popup(popup, body.target)
        return _session_json(session, created, {"closed": closed})

    @fastapi_app.post("/api/session/leave")
    async def leave_endpoint(request: Request) -> dict[str, bool]:
        try:
            payload = await request.json()
        except ValueError:  # invalid JSON or undecodable bytes
            payload = {}
        view_id = payload.get("view") if isinstance(payload, dict) else None
        registry = get_session_registry(fastapi_app)
        cookie_name = get_settings_for(fastapi_app).session_cookie
        ended = registry.leave(
            request.cookies.get(cookie_name),
            view_id if isinstance(view_id, str) else None,
        )
        return {"ended": ended}


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
