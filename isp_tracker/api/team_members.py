"""
Team member API endpoints - staff directory, badges and performance scorecards
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field, field_validator

from isp_tracker.api.auth import get_current_user
from isp_tracker.api.deps import get_store
from isp_tracker.api.schemas import CamelModel, PatchModel
from isp_tracker.models import TeamMember, TeamMemberRole, BadgeType, TeamMemberBadge, PerformanceMetric
from isp_tracker.models.badge import get_badge_info
from isp_tracker.models.user import User
from isp_tracker.storage.base import ProjectStore

router = APIRouter()


# --- Pydantic Schemas ---

class TeamMemberCreate(CamelModel):
    name: str = Field(min_length=1)
    role: TeamMemberRole
    email: str = Field(min_length=1)
    phone: Optional[str] = None


class TeamMemberResponse(CamelModel):
    id: int
    name: str
    role: TeamMemberRole
    email: str
    phone: Optional[str] = None


class BadgeCreate(CamelModel):
    badge_type: BadgeType
    project_id: Optional[int] = None
    description: Optional[str] = None


class BadgeResponse(CamelModel):
    id: int
    team_member_id: int
    badge_type: BadgeType
    label: str
    awarded_at: datetime
    project_id: Optional[int] = None
    description: Optional[str] = None


class PerformanceUpdate(PatchModel):
    projects_completed: Optional[int] = Field(default=None, ge=0)
    average_completion_time: Optional[float] = Field(default=None, ge=0)
    customer_satisfaction_score: Optional[float] = Field(default=None, ge=0)

    @field_validator("projects_completed")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("Field may not be null")
        return value


class PerformanceResponse(CamelModel):
    team_member_id: int
    projects_completed: int
    average_completion_time: Optional[float] = None
    customer_satisfaction_score: Optional[float] = None
    last_updated: Optional[datetime] = None


def _member_response(m: TeamMember) -> TeamMemberResponse:
    return TeamMemberResponse(id=m.id, name=m.name, role=m.role, email=m.email, phone=m.phone)


def _badge_response(b: TeamMemberBadge) -> BadgeResponse:
    info = get_badge_info(b.badge_type)
    return BadgeResponse(
        id=b.id,
        team_member_id=b.team_member_id,
        badge_type=b.badge_type,
        label=info["label"],
        awarded_at=b.awarded_at,
        project_id=b.project_id,
        description=b.description or info["description"],
    )


def _performance_response(m: PerformanceMetric) -> PerformanceResponse:
    return PerformanceResponse(
        team_member_id=m.team_member_id,
        projects_completed=m.projects_completed or 0,
        average_completion_time=m.average_completion_time,
        customer_satisfaction_score=m.customer_satisfaction_score,
        last_updated=m.last_updated,
    )


async def _require_member(store: ProjectStore, member_id: int) -> TeamMember:
    member = await store.get_team_member(member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Team member not found")
    return member


# --- Team member Endpoints ---

@router.get("", response_model=List[TeamMemberResponse])
async def list_team_members(
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    members = await store.list_team_members()
    return [_member_response(m) for m in members]


@router.post("", response_model=TeamMemberResponse, status_code=status.HTTP_201_CREATED)
async def create_team_member(
    data: TeamMemberCreate,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    member = await store.create_team_member(data.model_dump())
    await store.commit()
    return _member_response(member)


@router.get("/{member_id}", response_model=TeamMemberResponse)
async def get_team_member(
    member_id: int,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    return _member_response(await _require_member(store, member_id))


# --- Badge Endpoints ---

@router.get("/{member_id}/badges", response_model=List[BadgeResponse])
async def list_badges(
    member_id: int,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    badges = await store.list_badges(member_id)
    return [_badge_response(b) for b in badges]


@router.post("/{member_id}/badges", response_model=BadgeResponse,
             status_code=status.HTTP_201_CREATED)
async def award_badge(
    member_id: int,
    data: BadgeCreate,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    """Award a badge; badges are permanent once given"""
    await _require_member(store, member_id)
    if data.project_id is not None and not await store.get_project(data.project_id):
        raise HTTPException(status_code=404, detail="Project not found")

    badge = await store.award_badge({
        "team_member_id": member_id,
        "badge_type": data.badge_type,
        "project_id": data.project_id,
        "description": data.description,
    })
    await store.commit()
    return _badge_response(badge)


# --- Performance Endpoints ---

@router.get("/{member_id}/performance", response_model=PerformanceResponse)
async def get_performance(
    member_id: int,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    metric = await store.get_performance_metric(member_id)
    if not metric:
        raise HTTPException(status_code=404, detail="Performance metrics not found")
    return _performance_response(metric)


@router.put("/{member_id}/performance", response_model=PerformanceResponse)
async def upsert_performance(
    member_id: int,
    data: PerformanceUpdate,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    """Create the scorecard on first write, then merge the supplied fields"""
    await _require_member(store, member_id)
    metric = await store.upsert_performance_metric(member_id, data.to_patch())
    await store.commit()
    return _performance_response(metric)
