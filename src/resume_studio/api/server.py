"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from resume_studio import __version__
from resume_studio.api import routes_jobs, routes_projects, routes_resume, routes_tailor
from resume_studio.clients.agent_client import AgentRunClient
from resume_studio.config import AppConfig, load_config
from resume_studio.errors import RateLimitExceeded, ResumeStudioError
from resume_studio.logging.usage_store import UsageStore
from resume_studio.services import build_services
from resume_studio.store.profile_store import ProfileStore

logger = logging.getLogger(__name__)


def _error_response(
    status_code: int, message: str, debug: dict | None, dev_mode: bool, headers=None
) -> JSONResponse:
    body: dict = {"error": message}
    if dev_mode and debug:
        body["debug"] = debug
    return JSONResponse(body, status_code=status_code, headers=headers)


def create_app(
    config: AppConfig | None = None,
    *,
    store: ProfileStore | None = None,
    agent_client: AgentRunClient | None = None,
    usage_store: UsageStore | None = None,
) -> FastAPI:
    config = config or load_config()
    services = build_services(
        config, store=store, agent_client=agent_client, usage_store=usage_store
    )
    dev_mode = config.server.dev_mode

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await services.agent.aclose()

    app = FastAPI(title="Resume Studio", version=__version__, lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.server.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RateLimitExceeded)
    async def _rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        headers = {
            "Retry-After": str(exc.retry_after),
            "X-RateLimit-Limit": str(exc.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(int(exc.reset_at)),
        }
        return _error_response(exc.status_code, exc.user_message, None, dev_mode, headers)

    @app.exception_handler(ResumeStudioError)
    async def _studio_error(request: Request, exc: ResumeStudioError) -> JSONResponse:
        logger.info("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc)
        debug = {"detail": str(exc), **exc.debug}
        return _error_response(exc.status_code, exc.user_message, debug, dev_mode)

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        debug = {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]}
        return _error_response(400, "Invalid request body", debug, dev_mode)

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return _error_response(500, "Internal server error", {"exception": repr(exc)}, dev_mode)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "version": __version__}

    app.include_router(routes_tailor.router)
    app.include_router(routes_projects.router)
    app.include_router(routes_jobs.router)
    app.include_router(routes_resume.router)
    return app
