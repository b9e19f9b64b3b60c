"""Resume text parsing endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from resume_studio.api.deps import current_user, get_services, rate_limit
from resume_studio.errors import InvalidRequestError
from resume_studio.models.base import WireModel
from resume_studio.services import Services

router = APIRouter(prefix="/api/resume", tags=["resume"])


class ParseResumeBody(WireModel):
    text: str | None = None


@router.post("/parse-structured", dependencies=[Depends(rate_limit("ai"))])
async def parse_structured(
    body: ParseResumeBody,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> dict:
    if not body.text or not body.text.strip():
        raise InvalidRequestError("Resume text is required")
    parsed = await services.resume_parser.parse(body.text, user_id=user_id)
    return parsed.to_wire()
