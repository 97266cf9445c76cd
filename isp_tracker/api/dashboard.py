"""
Dashboard API - stage and status counts for the overview page
"""
from fastapi import APIRouter, Depends

from isp_tracker.api.auth import get_current_user
from isp_tracker.api.deps import get_store
from isp_tracker.models.user import User
from isp_tracker.services import reporting
from isp_tracker.storage.base import ProjectStore
from isp_tracker.workflow.stages import ProjectStage, get_stage_info

router = APIRouter()


@router.get("/stats")
async def get_dashboard_stats(
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    """Projects per stage and service type, plus active / completed totals"""
    return await reporting.dashboard_stats(store)


@router.get("/stages")
async def get_stage_metadata(current_user: User = Depends(get_current_user)):
    """Label, colors and progress percentage for each stage"""
    return [{"stage": int(stage), **get_stage_info(stage)} for stage in ProjectStage]
