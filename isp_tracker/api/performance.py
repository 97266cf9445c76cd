"""
Team performance API - monthly rollups and the leaderboard
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import Field, field_validator

from isp_tracker.api.auth import get_current_user
from isp_tracker.api.deps import get_store
from isp_tracker.api.schemas import CamelModel, PatchModel
from isp_tracker.models import MonthlyTeamPerformance
from isp_tracker.models.user import User
from isp_tracker.services import reporting
from isp_tracker.storage.base import ProjectStore

router = APIRouter()


class MonthlyPerformanceUpdate(PatchModel):
    projects_completed: Optional[int] = Field(default=None, ge=0)
    average_completion_time: Optional[float] = Field(default=None, ge=0)
    average_customer_satisfaction: Optional[float] = Field(default=None, ge=0)

    @field_validator("projects_completed")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("Field may not be null")
        return value


class MonthlyPerformanceResponse(CamelModel):
    id: int
    month: int
    year: int
    projects_completed: int
    average_completion_time: Optional[float] = None
    average_customer_satisfaction: Optional[float] = None


class LeaderboardEntry(CamelModel):
    team_member_id: int
    name: str
    role: str
    projects_completed: int
    average_completion_time: Optional[float] = None
    customer_satisfaction_score: Optional[float] = None
    badge_count: int


def _monthly_response(row: MonthlyTeamPerformance) -> MonthlyPerformanceResponse:
    return MonthlyPerformanceResponse(
        id=row.id,
        month=row.month,
        year=row.year,
        projects_completed=row.projects_completed or 0,
        average_completion_time=row.average_completion_time,
        average_customer_satisfaction=row.average_customer_satisfaction,
    )


@router.get("/monthly/{year}", response_model=List[MonthlyPerformanceResponse])
async def list_monthly_performance(
    year: int = Path(ge=1900, le=9999),
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    """Every recorded month of the year, January first"""
    rows = await reporting.monthly_performance(store, year)
    return [_monthly_response(r) for r in rows]


@router.get("/monthly/{year}/{month}", response_model=MonthlyPerformanceResponse)
async def get_monthly_performance(
    year: int = Path(ge=1900, le=9999),
    month: int = Path(ge=1, le=12),
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    rows = await reporting.monthly_performance(store, year, month)
    if not rows:
        raise HTTPException(status_code=404, detail="Monthly performance not found")
    return _monthly_response(rows[0])


@router.put("/monthly/{year}/{month}", response_model=MonthlyPerformanceResponse)
async def upsert_monthly_performance(
    data: MonthlyPerformanceUpdate,
    year: int = Path(ge=1900, le=9999),
    month: int = Path(ge=1, le=12),
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    """One row per (month, year): repeated PUTs overwrite it"""
    row = await store.upsert_monthly_performance(year, month, data.to_patch())
    await store.commit()
    return _monthly_response(row)


@router.get("/leaderboard", response_model=List[LeaderboardEntry])
async def get_leaderboard(
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    rows = await reporting.team_leaderboard(store)
    return [LeaderboardEntry(**row) for row in rows]
