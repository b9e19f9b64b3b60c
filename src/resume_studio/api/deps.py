"""Request dependencies shared by the routers."""

from __future__ import annotations

from fastapi import Request

from resume_studio.errors import RateLimitExceeded
from resume_studio.services import Services
from resume_studio.utils.rate_limit import request_identifier


def get_services(request: Request) -> Services:
    return request.app.state.services


def current_user(request: Request) -> str:
    services = get_services(request)
    return services.authenticator.resolve(request.headers.get("authorization"))


def rate_limit(kind: str):
    """Dependency enforcing the named limiter for the calling client."""

    def check(request: Request) -> None:
        limiter = get_services(request).limiters[kind]
        identifier = request_identifier(
            request.headers.get("authorization"),
            request.client.host if request.client else None,
        )
        decision = limiter.check(identifier)
        if not decision.allowed:
            raise RateLimitExceeded(
                decision.retry_after, limit=decision.limit, reset_at=decision.reset_at
            )

    return check
