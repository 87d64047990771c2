"""Entry point for the FastAPI-powered media tracker backend."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from .catalog_kinds import CATALOG_KINDS
from .config import Settings, settings
from .database import Database
from .errors import AuthenticationError, ErrorMapper, MediaTrackerError
from .models import (
    CatalogItemPayload,
    Credentials,
    MembershipAddRequest,
    MembershipRemoveRequest,
)
from .services.identity import IdentityService
from .services.memberships import MembershipService, create_membership_service
from .services.sessions import SessionStore

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app: FastAPI

_USER_ERRORS = ErrorMapper(resource_name="User")
_KIND_ERRORS = {
    kind.key: ErrorMapper(resource_name=kind.label) for kind in CATALOG_KINDS
}


def wire_services(
    fastapi_app: FastAPI, database: Database, app_settings: Settings
) -> None:
    """Attach the identity, session and per-family list services to app state."""

    fastapi_app.state.settings = app_settings
    fastapi_app.state.database = database
    fastapi_app.state.identity_service = IdentityService(
        database.session_factory,
        password_hash_iterations=app_settings.password_hash_iterations,
    )
    fastapi_app.state.session_store = SessionStore(app_settings.session_ttl_seconds)
    fastapi_app.state.membership_services = {
        kind.list_segment: create_membership_service(
            kind,
            database.session_factory,
            strict_categories=app_settings.strict_categories,
            write_retry_limit=app_settings.write_retry_limit,
        )
        for kind in CATALOG_KINDS
    }


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    database = Database(settings.database_url)
    await database.create_all()
    wire_services(fastapi_app, database, settings)
    logger.info("Media tracker ready using %s", database.engine.url.render_as_string())

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Track watchlists, favourites and watched titles for movies and shows",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_app_settings(fastapi_app: FastAPI) -> Settings:
    configured = getattr(fastapi_app.state, "settings", None)
    if isinstance(configured, Settings):
        return configured
    return settings


def get_identity_service(fastapi_app: FastAPI) -> IdentityService:
    service = getattr(fastapi_app.state, "identity_service", None)
    if not isinstance(service, IdentityService):
        raise RuntimeError("Identity service not initialised")
    return service


def get_session_store(fastapi_app: FastAPI) -> SessionStore:
    store = getattr(fastapi_app.state, "session_store", None)
    if not isinstance(store, SessionStore):
        raise RuntimeError("Session store not initialised")
    return store


def get_membership_service(fastapi_app: FastAPI, segment: str) -> MembershipService:
    """Resolve the list service for a URL segment such as ``movielist`` or ``movies``."""

    services: dict[str, MembershipService] = getattr(
        fastapi_app.state, "membership_services", None
    ) or {}
    if not services:
        raise RuntimeError("Membership services not initialised")
    for list_segment, service in services.items():
        if segment in {list_segment, service.kind.key}:
            return service
    available = ", ".join(
        sorted(service.kind.key for service in services.values())
    )
    raise HTTPException(
        status_code=404,
        detail=f"Unknown catalog '{segment}'. Available: {available}",
    )


def register_routes(fastapi_app: FastAPI) -> None:
    async def _read_body(request: Request, model: type[BaseModel]) -> Any:
        try:
            payload = await request.json()
        except ValueError as exc:
            # Covers malformed JSON as well as bodies that are not UTF-8.
            raise HTTPException(status_code=400, detail="Invalid payload") from exc
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(
                status_code=400,
                detail=exc.errors(include_url=False, include_context=False),
            ) from exc

    def _session_response(
        request: Request, body: dict[str, Any], username: str
    ) -> JSONResponse:
        app_settings = get_app_settings(fastapi_app)
        store = get_session_store(fastapi_app)
        store.revoke(request.cookies.get(app_settings.session_cookie_name))
        token = store.issue(username)
        response = JSONResponse(body)
        response.set_cookie(
            app_settings.session_cookie_name,
            token,
            max_age=app_settings.session_ttl_seconds,
            httponly=True,
            samesite="lax",
            secure=app_settings.environment == "production",
        )
        return response

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.post("/api/user/register")
    async def register(request: Request) -> JSONResponse:
        credentials: Credentials = await _read_body(request, Credentials)
        try:
            username = await get_identity_service(fastapi_app).register(credentials)
        except MediaTrackerError as exc:
            return _USER_ERRORS.to_response(exc)
        return _session_response(
            request,
            {"message": "Registration successful", "username": username},
            username,
        )

    @fastapi_app.post("/api/user/login")
    async def login(request: Request) -> JSONResponse:
        credentials: Credentials = await _read_body(request, Credentials)
        try:
            username = await get_identity_service(fastapi_app).authenticate(credentials)
        except MediaTrackerError as exc:
            return _USER_ERRORS.to_response(exc)
        return _session_response(
            request,
            {"message": "Login successful", "username": username},
            username,
        )

    @fastapi_app.post("/api/user/logout")
    async def logout(request: Request) -> JSONResponse:
        app_settings = get_app_settings(fastapi_app)
        get_session_store(fastapi_app).revoke(
            request.cookies.get(app_settings.session_cookie_name)
        )
        response = JSONResponse({"message": "Logged out"})
        response.delete_cookie(app_settings.session_cookie_name)
        return response

    @fastapi_app.get("/api/user/me")
    async def me(request: Request) -> JSONResponse:
        app_settings = get_app_settings(fastapi_app)
        try:
            username = get_session_store(fastapi_app).resolve(
                request.cookies.get(app_settings.session_cookie_name)
            )
        except AuthenticationError:
            return JSONResponse({"authenticated": False}, status_code=401)
        return JSONResponse({"authenticated": True, "username": username})

    @fastapi_app.get("/api/user/{list_segment}/{category}")
    async def list_memberships(
        list_segment: str, category: str, username: str
    ) -> JSONResponse:
        service = get_membership_service(fastapi_app, list_segment)
        try:
            records = await service.list_memberships(username, category)
        except MediaTrackerError as exc:
            return _KIND_ERRORS[service.kind.key].to_response(exc)
        record_key = service.kind.record_key
        return JSONResponse([record.to_payload(record_key) for record in records])

    @fastapi_app.post("/api/user/{list_segment}/{category}/add")
    async def add_membership(
        request: Request, list_segment: str, category: str
    ) -> JSONResponse:
        service = get_membership_service(fastapi_app, list_segment)
        payload: MembershipAddRequest = await _read_body(request, MembershipAddRequest)
        try:
            message = await service.add(
                payload.username, payload.tmdb_id, category, payload.metadata()
            )
        except MediaTrackerError as exc:
            return _KIND_ERRORS[service.kind.key].to_response(exc)
        return JSONResponse({"message": message})

    @fastapi_app.post("/api/user/{list_segment}/{category}/remove")
    async def remove_membership(
        request: Request, list_segment: str, category: str
    ) -> JSONResponse:
        service = get_membership_service(fastapi_app, list_segment)
        payload: MembershipRemoveRequest = await _read_body(
            request, MembershipRemoveRequest
        )
        try:
            message = await service.remove(payload.username, payload.tmdb_id, category)
        except MediaTrackerError as exc:
            return _KIND_ERRORS[service.kind.key].to_response(exc)
        return JSONResponse({"message": message})

    @fastapi_app.get("/api/{catalog_key}")
    async def list_catalog(catalog_key: str, title: str | None = None) -> JSONResponse:
        service = get_membership_service(fastapi_app, catalog_key)
        try:
            items = await service.catalog.list_items(title=title)
        except MediaTrackerError as exc:
            return _KIND_ERRORS[service.kind.key].to_response(exc)
        return JSONResponse([item.to_payload() for item in items])

    @fastapi_app.post("/api/{catalog_key}")
    async def ingest_catalog_item(request: Request, catalog_key: str) -> JSONResponse:
        service = get_membership_service(fastapi_app, catalog_key)
        payload: CatalogItemPayload = await _read_body(request, CatalogItemPayload)
        try:
            item = await service.catalog.ingest(payload)
        except MediaTrackerError as exc:
            return _KIND_ERRORS[service.kind.key].to_response(exc)
        return JSONResponse(item.to_payload())


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
