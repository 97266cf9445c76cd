"""
SQLAlchemy-backed entity store
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from fastapi import Depends
from sqlalchemy import select, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from isp_tracker.database import get_db
from isp_tracker.exceptions import StoreFailure
from isp_tracker.models import (
    User,
    TeamMember,
    TeamMemberRole,
    Project,
    ProjectDocument,
    ProjectStageHistory,
    ServiceType,
    Task,
    TeamMemberBadge,
    PerformanceMetric,
    MonthlyTeamPerformance,
)
from isp_tracker.models.project import format_project_code
from isp_tracker.storage.base import (
    ProjectStore,
    PROJECT_MUTABLE_FIELDS,
    TASK_MUTABLE_FIELDS,
    PERFORMANCE_FIELDS,
    MONTHLY_PERFORMANCE_FIELDS,
    check_patch,
)
from isp_tracker.workflow.stages import INITIAL_STAGE

logger = logging.getLogger(__name__)


class SqlProjectStore(ProjectStore):

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _all(self, query) -> list:
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _one_or_none(self, query):
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _add(self, obj):
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    # --- Transaction ---

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Commit failed: {e}")
            raise StoreFailure("Could not save changes") from e

    async def rollback(self) -> None:
        await self.db.rollback()

    # --- Users ---

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        return await self._one_or_none(select(User).where(User.username == username))

    async def create_user(self, fields: Dict[str, Any]) -> User:
        return await self._add(User(**fields))

    # --- Team members ---

    async def list_team_members(self) -> List[TeamMember]:
        return await self._all(select(TeamMember).order_by(TeamMember.name))

    async def get_team_member(self, member_id: int) -> Optional[TeamMember]:
        return await self.db.get(TeamMember, member_id)

    async def create_team_member(self, fields: Dict[str, Any]) -> TeamMember:
        return await self._add(TeamMember(**fields))

    async def list_team_members_by_roles(self, roles: Iterable[TeamMemberRole]) -> List[TeamMember]:
        return await self._all(
            select(TeamMember).where(TeamMember.role.in_(list(roles))).order_by(TeamMember.id)
        )

    # --- Projects ---

    async def list_projects(self) -> List[Project]:
        return await self._all(select(Project).order_by(Project.updated_at.desc(), Project.id.desc()))

    async def get_project(self, project_id: int) -> Optional[Project]:
        return await self.db.get(Project, project_id)

    async def create_project(self, fields: Dict[str, Any]) -> Project:
        project = Project(**fields, current_stage=int(INITIAL_STAGE))
        self.db.add(project)
        await self.db.flush()

        # Code is derived from the row id
        project.project_code = format_project_code(datetime.utcnow().year, project.id)
        await self.db.flush()
        await self.db.refresh(project)
        return project

    async def update_project(self, project: Project, fields: Dict[str, Any]) -> Project:
        updates = check_patch(fields, PROJECT_MUTABLE_FIELDS, "project")
        for key, value in updates.items():
            setattr(project, key, value)
        project.updated_at = datetime.utcnow()
        await self.db.flush()
        await self.db.refresh(project)
        return project

    async def set_project_stage(self, project: Project, stage: int) -> Project:
        project.current_stage = int(stage)
        project.updated_at = datetime.utcnow()
        await self.db.flush()
        await self.db.refresh(project)
        return project

    async def list_projects_by_stage(self, stage: int) -> List[Project]:
        return await self._all(
            select(Project).where(Project.current_stage == int(stage)).order_by(Project.id)
        )

    async def list_projects_by_service_type(self, service_type: ServiceType) -> List[Project]:
        return await self._all(
            select(Project).where(Project.service_type == service_type).order_by(Project.id)
        )

    async def list_projects_by_completion(self, is_completed: bool) -> List[Project]:
        condition = Project.is_completed if is_completed else ~Project.is_completed
        return await self._all(select(Project).where(condition).order_by(Project.id))

    async def search_projects(self, query: str) -> List[Project]:
        needle = query.lower()
        columns = [
            Project.customer_name,
            Project.contact_person,
            Project.project_code,
            Project.address,
            Project.email,
        ]
        return await self._all(
            select(Project)
            .where(or_(*[func.lower(col).contains(needle, autoescape=True) for col in columns]))
            .order_by(Project.id)
        )

    # --- Stage history ---

    async def add_stage_history(
        self, project_id: int, stage: int, notes: Optional[str], changed_by: Optional[int]
    ) -> ProjectStageHistory:
        return await self._add(ProjectStageHistory(
            project_id=project_id,
            stage=int(stage),
            notes=notes,
            changed_by=changed_by,
            timestamp=datetime.utcnow(),
        ))

    async def list_stage_history(self, project_id: int) -> List[ProjectStageHistory]:
        return await self._all(
            select(ProjectStageHistory)
            .where(ProjectStageHistory.project_id == project_id)
            .order_by(ProjectStageHistory.timestamp.desc(), ProjectStageHistory.id.desc())
        )

    # --- Documents ---

    async def add_document(self, fields: Dict[str, Any]) -> ProjectDocument:
        return await self._add(ProjectDocument(**fields))

    async def list_documents(self, project_id: int) -> List[ProjectDocument]:
        return await self._all(
            select(ProjectDocument)
            .where(ProjectDocument.project_id == project_id)
            .order_by(ProjectDocument.uploaded_at.desc(), ProjectDocument.id.desc())
        )

    async def get_document(self, project_id: int, document_id: int) -> Optional[ProjectDocument]:
        return await self._one_or_none(
            select(ProjectDocument).where(
                ProjectDocument.id == document_id,
                ProjectDocument.project_id == project_id,
            )
        )

    # --- Tasks ---

    async def list_tasks(self, project_id: int) -> List[Task]:
        return await self._all(
            select(Task).where(Task.project_id == project_id).order_by(Task.stage, Task.id)
        )

    async def get_task(self, task_id: int) -> Optional[Task]:
        return await self.db.get(Task, task_id)

    async def create_task(self, fields: Dict[str, Any]) -> Task:
        return await self._add(Task(**fields))

    async def update_task(self, task: Task, fields: Dict[str, Any]) -> Task:
        updates = check_patch(fields, TASK_MUTABLE_FIELDS, "task")
        for key, value in updates.items():
            setattr(task, key, value)
        await self.db.flush()
        await self.db.refresh(task)
        return task

    # --- Badges ---

    async def list_badges(self, team_member_id: int) -> List[TeamMemberBadge]:
        return await self._all(
            select(TeamMemberBadge)
            .where(TeamMemberBadge.team_member_id == team_member_id)
            .order_by(TeamMemberBadge.awarded_at.desc(), TeamMemberBadge.id.desc())
        )

    async def award_badge(self, fields: Dict[str, Any]) -> TeamMemberBadge:
        return await self._add(TeamMemberBadge(**fields, awarded_at=datetime.utcnow()))

    async def count_badges_by_member(self) -> Dict[int, int]:
        result = await self.db.execute(
            select(TeamMemberBadge.team_member_id, func.count(TeamMemberBadge.id))
            .group_by(TeamMemberBadge.team_member_id)
        )
        return {member_id: count for member_id, count in result.all()}

    # --- Performance ---

    async def get_performance_metric(self, team_member_id: int) -> Optional[PerformanceMetric]:
        return await self._one_or_none(
            select(PerformanceMetric).where(PerformanceMetric.team_member_id == team_member_id)
        )

    async def list_performance_metrics(self) -> List[PerformanceMetric]:
        return await self._all(select(PerformanceMetric))

    async def upsert_performance_metric(
        self, team_member_id: int, fields: Dict[str, Any]
    ) -> PerformanceMetric:
        updates = check_patch(fields, PERFORMANCE_FIELDS, "performance metric")
        metric = await self.get_performance_metric(team_member_id)
        if metric is None:
            metric = PerformanceMetric(team_member_id=team_member_id, projects_completed=0)
            self.db.add(metric)
        for key, value in updates.items():
            setattr(metric, key, value)
        metric.last_updated = datetime.utcnow()
        await self.db.flush()
        await self.db.refresh(metric)
        return metric

    async def get_monthly_performance(self, year: int, month: int) -> Optional[MonthlyTeamPerformance]:
        return await self._one_or_none(
            select(MonthlyTeamPerformance).where(
                MonthlyTeamPerformance.year == year,
                MonthlyTeamPerformance.month == month,
            )
        )

    async def list_monthly_performance(self, year: int) -> List[MonthlyTeamPerformance]:
        return await self._all(
            select(MonthlyTeamPerformance)
            .where(MonthlyTeamPerformance.year == year)
            .order_by(MonthlyTeamPerformance.month)
        )

    async def upsert_monthly_performance(
        self, year: int, month: int, fields: Dict[str, Any]
    ) -> MonthlyTeamPerformance:
        updates = check_patch(fields, MONTHLY_PERFORMANCE_FIELDS, "monthly performance")
        row = await self.get_monthly_performance(year, month)
        if row is None:
            row = MonthlyTeamPerformance(year=year, month=month, projects_completed=0)
            self.db.add(row)
        for key, value in updates.items():
            setattr(row, key, value)
        await self.db.flush()
        await self.db.refresh(row)
        return row

    # --- Aggregates ---

    async def count_projects_by_stage(self) -> Dict[int, int]:
        result = await self.db.execute(
            select(Project.current_stage, func.count(Project.id)).group_by(Project.current_stage)
        )
        return {stage: count for stage, count in result.all()}

    async def count_projects_by_completion(self) -> Dict[bool, int]:
        completed = await self.db.execute(
            select(func.count(Project.id)).where(Project.is_completed)
        )
        total = await self.db.execute(select(func.count(Project.id)))
        completed_count = completed.scalar() or 0
        return {True: completed_count, False: (total.scalar() or 0) - completed_count}

    async def count_projects_by_service_type(self) -> Dict[ServiceType, int]:
        result = await self.db.execute(
            select(Project.service_type, func.count(Project.id)).group_by(Project.service_type)
        )
        return {service_type: count for service_type, count in result.all()}


async def get_store(db: AsyncSession = Depends(get_db)) -> ProjectStore:
    """Dependency providing the request-scoped entity store"""
    return SqlProjectStore(db)
