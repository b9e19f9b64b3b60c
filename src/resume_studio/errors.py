"""Error taxonomy shared by the pipeline, the CLI and the HTTP layer.

Only conditions that leave the user with nothing actionable are raised.
Degraded-but-usable paths (malformed agent sub-fields, an unusable merge
tier) are handled where they occur and never reach this module.
"""

from __future__ import annotations

from typing import Any

from resume_studio.models.agent import AgentErrorDetail


class ResumeStudioError(Exception):
    """Base error carrying a user-facing message and an HTTP status."""

    status_code: int = 500
    default_user_message: str = "An error occurred"
    # Whether the message itself is safe to show the user
    expose_message: bool = False

    def __init__(
        self,
        message: str | None = None,
        *,
        user_message: str | None = None,
        debug: dict[str, Any] | None = None,
    ):
        exposed = message if self.expose_message else None
        self.user_message = user_message or exposed or self.default_user_message
        self.debug = debug or {}
        super().__init__(message or self.user_message)


class InvalidRequestError(ResumeStudioError):
    status_code = 400
    default_user_message = "Invalid request"
    expose_message = True


class UnsafeUrlError(InvalidRequestError):
    default_user_message = "URL is not allowed"


class AuthError(ResumeStudioError):
    status_code = 401
    default_user_message = "Not authenticated. Please log in."


class InsufficientProfileDataError(ResumeStudioError):
    status_code = 422
    default_user_message = (
        "No profile data found. Please add experience or projects to your profile."
    )


class AgentFailure(ResumeStudioError):
    """The agent run failed, timed out, or produced nothing usable."""

    status_code = 422
    default_user_message = "The AI service could not complete the request. Please try again."

    def __init__(
        self,
        message: str | None = None,
        *,
        user_message: str | None = None,
        detail: AgentErrorDetail | None = None,
        error_code: str | None = None,
        debug: dict[str, Any] | None = None,
    ):
        self.detail = detail
        self.error_code = error_code
        debug = dict(debug or {})
        if detail is not None:
            debug.setdefault("agentError", detail.model_dump(mode="json"))
        super().__init__(message, user_message=user_message, debug=debug)


class RateLimitExceeded(ResumeStudioError):
    status_code = 429
    default_user_message = "Too many requests. Please wait before trying again."

    def __init__(self, retry_after: int, *, limit: int, reset_at: float):
        self.retry_after = retry_after
        self.limit = limit
        self.reset_at = reset_at
        super().__init__(f"Rate limit exceeded, retry after {retry_after}s")
