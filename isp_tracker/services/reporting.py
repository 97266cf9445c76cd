"""
Read-only dashboard and performance aggregates.

Nothing here writes to the store, and every function returns zeroed
results for an empty database.
"""
from typing import Any, Dict, List, Optional

from isp_tracker.models import MonthlyTeamPerformance, ServiceType
from isp_tracker.storage.base import ProjectStore
from isp_tracker.workflow.stages import ProjectStage


async def stage_counts(store: ProjectStore) -> Dict[int, int]:
    """Projects per stage, all five stages always present"""
    raw = await store.count_projects_by_stage()
    return {int(stage): raw.get(int(stage), 0) for stage in ProjectStage}


async def service_type_counts(store: ProjectStore) -> Dict[str, int]:
    raw = await store.count_projects_by_service_type()
    return {st.value: raw.get(st, 0) for st in ServiceType}


async def status_split(store: ProjectStore) -> Dict[str, int]:
    raw = await store.count_projects_by_completion()
    active = raw.get(False, 0)
    completed = raw.get(True, 0)
    return {"active": active, "completed": completed, "total": active + completed}


async def dashboard_stats(store: ProjectStore) -> Dict[str, Any]:
    split = await status_split(store)
    return {
        "stageStats": await stage_counts(store),
        "serviceTypeStats": await service_type_counts(store),
        "activeCount": split["active"],
        "completedCount": split["completed"],
        "totalCount": split["total"],
    }


async def monthly_performance(
    store: ProjectStore, year: int, month: Optional[int] = None
) -> List[MonthlyTeamPerformance]:
    if month is not None:
        row = await store.get_monthly_performance(year, month)
        return [row] if row else []
    return await store.list_monthly_performance(year)


async def team_leaderboard(store: ProjectStore) -> List[Dict[str, Any]]:
    """Team members ranked by completed projects, then satisfaction"""
    members = await store.list_team_members()
    metrics = {m.team_member_id: m for m in await store.list_performance_metrics()}
    badge_counts = await store.count_badges_by_member()

    rows = []
    for member in members:
        metric = metrics.get(member.id)
        rows.append({
            "teamMemberId": member.id,
            "name": member.name,
            "role": member.role.value if hasattr(member.role, "value") else member.role,
            "projectsCompleted": metric.projects_completed if metric else 0,
            "averageCompletionTime": metric.average_completion_time if metric else None,
            "customerSatisfactionScore": metric.customer_satisfaction_score if metric else None,
            "badgeCount": badge_counts.get(member.id, 0),
        })

    rows.sort(key=lambda r: (-r["projectsCompleted"], -(r["customerSatisfactionScore"] or 0), r["name"]))
    return rows
