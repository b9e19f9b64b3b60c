"""Project merge endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import Field

from resume_studio.api.deps import current_user, get_services, rate_limit
from resume_studio.models.base import WireModel
from resume_studio.models.merge import ParsedProject
from resume_studio.services import Services

router = APIRouter(prefix="/api/projects", tags=["projects"])


class MergeProjectsBody(WireModel):
    projects: list[ParsedProject] = Field(default_factory=list)
    auto_apply: bool = True


@router.post("/merge", dependencies=[Depends(rate_limit("ai"))])
async def merge_projects(
    body: MergeProjectsBody,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> dict:
    response = await services.merge_engine.merge_for_user(
        user_id, body.projects, body.auto_apply
    )
    return response.to_wire()
