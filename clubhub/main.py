from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .database import init_db

from .api.auth import router as auth_router
from .api.me import router as me_router
from .api.clubs import router as clubs_router
from .api.members import router as members_router
from .api.invites import router as invites_router
from .api.invites import public_router as invite_links_router
from .api.applications import router as applications_router
from .api.events import router as events_router
from .api.audit_logs import router as audit_logs_router

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def error_body(status_code: int, message: Any) -> Dict[str, Any]:
    return {"statusCode": status_code, "message": message}


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "header")]
        field = ".".join(loc)
        msg = err.get("msg", "Invalid value")
        parts.append(f"{field}: {msg}" if field else msg)
    return "; ".join(parts) or "Invalid request"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Creates tables for all registered SQLModel models (idempotent)
    init_db()
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Club Membership API",
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Correlation id: one per request, echoed back, stamped on audit rows ---
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):  # noqa: ANN001
        cid = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        request.state.correlation_id = cid
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = cid
        return response

    # --- Error envelope: {statusCode, message} for every failure ---
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _validation_message(exc)
        logger.info("rejected %s %s: %s", request.method, request.url.path, message)
        return JSONResponse(status_code=400, content=error_body(400, message))

    # --- Health / meta ---
    @app.get("/health", tags=["meta"])
    def health() -> Dict[str, Any]:
        return {"ok": True, "env": settings.env}

    @app.get("/version", tags=["meta"])
    def version() -> Dict[str, Any]:
        return {"version": settings.app_version}

    # --- API routers ---
    app.include_router(auth_router)
    app.include_router(me_router)
    app.include_router(clubs_router)
    app.include_router(members_router)
    app.include_router(invites_router)
    app.include_router(invite_links_router)
    app.include_router(applications_router)
    app.include_router(events_router)
    app.include_router(audit_logs_router)

    return app


app = create_app()


def run() -> None:
    logging.basicConfig(level=getattr(logging, str(settings.log_level).upper(), logging.INFO))
    import uvicorn

    # reload should be True in local dev, False in prod.
    uvicorn.run(
        "clubhub.main:app",
        host=settings.host,
        port=int(settings.port),
        reload=bool(settings.reload),
    )
