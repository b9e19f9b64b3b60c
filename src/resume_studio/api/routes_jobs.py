"""Job posting fetch endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from resume_studio.api.deps import current_user, get_services, rate_limit
from resume_studio.errors import InvalidRequestError
from resume_studio.models.base import WireModel
from resume_studio.services import Services

router = APIRouter(prefix="/api/job", tags=["jobs"])


class FetchJobBody(WireModel):
    url: str | None = None


@router.post("/fetch", dependencies=[Depends(rate_limit("fetch"))])
async def fetch_job(
    body: FetchJobBody,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> dict:
    url = (body.url or "").strip()
    if not url:
        raise InvalidRequestError("URL is required")
    posting = await services.job_fetcher.fetch(url, user_id=user_id)
    return {**posting.to_wire(), "text": posting.render_text(), "sourceUrl": url}
