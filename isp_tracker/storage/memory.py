"""
In-memory entity store.

Keeps every record in a dict keyed by an auto-incrementing id. Records are
the same SQLAlchemy model classes the SQL store returns, just never attached
to a session. Suitable for unit tests and local demos; restarting the
process resets it.

Inserts and field changes made since the last commit are journaled, and
rollback() undoes them newest first.
"""
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

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


class _Table(dict):
    """A dict of records with its own id sequence"""

    def __init__(self, journal: List[Callable[[], Any]]):
        super().__init__()
        self._next_id = 1
        self._journal = journal

    def insert(self, obj):
        obj.id = self._next_id
        self._next_id += 1
        self[obj.id] = obj
        self._journal.append(lambda: self.pop(obj.id, None))
        return obj

    def where(self, predicate) -> list:
        return [obj for obj in self.values() if predicate(obj)]


class InMemoryProjectStore(ProjectStore):

    def __init__(self):
        self._journal: List[Callable[[], Any]] = []
        self.users = _Table(self._journal)
        self.team_members = _Table(self._journal)
        self.projects = _Table(self._journal)
        self.stage_history = _Table(self._journal)
        self.documents = _Table(self._journal)
        self.tasks = _Table(self._journal)
        self.badges = _Table(self._journal)
        self.performance_metrics = _Table(self._journal)
        self.monthly_performance = _Table(self._journal)
        self.commits = 0

    # --- Transaction ---

    async def commit(self) -> None:
        self._journal.clear()
        self.commits += 1

    async def rollback(self) -> None:
        while self._journal:
            undo = self._journal.pop()
            undo()

    def _assign(self, obj, **values) -> None:
        previous = {key: getattr(obj, key) for key in values}

        def restore():
            for key, value in previous.items():
                setattr(obj, key, value)

        self._journal.append(restore)
        for key, value in values.items():
            setattr(obj, key, value)

    # --- Users ---

    async def get_user(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        matches = self.users.where(lambda u: u.username == username)
        return matches[0] if matches else None

    async def create_user(self, fields: Dict[str, Any]) -> User:
        return self.users.insert(User(**fields, created_at=datetime.utcnow()))

    # --- Team members ---

    async def list_team_members(self) -> List[TeamMember]:
        return sorted(self.team_members.values(), key=lambda m: m.name)

    async def get_team_member(self, member_id: int) -> Optional[TeamMember]:
        return self.team_members.get(member_id)

    async def create_team_member(self, fields: Dict[str, Any]) -> TeamMember:
        return self.team_members.insert(TeamMember(**fields))

    async def list_team_members_by_roles(self, roles: Iterable[TeamMemberRole]) -> List[TeamMember]:
        wanted = set(roles)
        return self.team_members.where(lambda m: m.role in wanted)

    # --- Projects ---

    async def list_projects(self) -> List[Project]:
        return sorted(
            self.projects.values(), key=lambda p: (p.updated_at, p.id), reverse=True
        )

    async def get_project(self, project_id: int) -> Optional[Project]:
        return self.projects.get(project_id)

    async def create_project(self, fields: Dict[str, Any]) -> Project:
        now = datetime.utcnow()
        project = self.projects.insert(Project(
            **fields,
            current_stage=int(INITIAL_STAGE),
            created_at=now,
            updated_at=now,
        ))
        project.project_code = format_project_code(now.year, project.id)
        return project

    async def update_project(self, project: Project, fields: Dict[str, Any]) -> Project:
        updates = check_patch(fields, PROJECT_MUTABLE_FIELDS, "project")
        self._assign(project, **updates, updated_at=datetime.utcnow())
        return project

    async def set_project_stage(self, project: Project, stage: int) -> Project:
        self._assign(project, current_stage=int(stage), updated_at=datetime.utcnow())
        return project

    async def list_projects_by_stage(self, stage: int) -> List[Project]:
        return self.projects.where(lambda p: p.current_stage == int(stage))

    async def list_projects_by_service_type(self, service_type: ServiceType) -> List[Project]:
        return self.projects.where(lambda p: p.service_type == service_type)

    async def list_projects_by_completion(self, is_completed: bool) -> List[Project]:
        return self.projects.where(lambda p: p.is_completed == is_completed)

    async def search_projects(self, query: str) -> List[Project]:
        needle = query.lower()

        def matches(p: Project) -> bool:
            haystack = (p.customer_name, p.contact_person, p.project_code, p.address, p.email)
            return any(needle in (value or "").lower() for value in haystack)

        return self.projects.where(matches)

    # --- Stage history ---

    async def add_stage_history(
        self, project_id: int, stage: int, notes: Optional[str], changed_by: Optional[int]
    ) -> ProjectStageHistory:
        return self.stage_history.insert(ProjectStageHistory(
            project_id=project_id,
            stage=int(stage),
            notes=notes,
            changed_by=changed_by,
            timestamp=datetime.utcnow(),
        ))

    async def list_stage_history(self, project_id: int) -> List[ProjectStageHistory]:
        entries = self.stage_history.where(lambda h: h.project_id == project_id)
        return sorted(entries, key=lambda h: (h.timestamp, h.id), reverse=True)

    # --- Documents ---

    async def add_document(self, fields: Dict[str, Any]) -> ProjectDocument:
        return self.documents.insert(ProjectDocument(**fields, uploaded_at=datetime.utcnow()))

    async def list_documents(self, project_id: int) -> List[ProjectDocument]:
        docs = self.documents.where(lambda d: d.project_id == project_id)
        return sorted(docs, key=lambda d: (d.uploaded_at, d.id), reverse=True)

    async def get_document(self, project_id: int, document_id: int) -> Optional[ProjectDocument]:
        doc = self.documents.get(document_id)
        if doc is None or doc.project_id != project_id:
            return None
        return doc

    # --- Tasks ---

    async def list_tasks(self, project_id: int) -> List[Task]:
        tasks = self.tasks.where(lambda t: t.project_id == project_id)
        return sorted(tasks, key=lambda t: (t.stage, t.id))

    async def get_task(self, task_id: int) -> Optional[Task]:
        return self.tasks.get(task_id)

    async def create_task(self, fields: Dict[str, Any]) -> Task:
        fields = {"is_completed": False, **fields}
        return self.tasks.insert(Task(**fields, created_at=datetime.utcnow()))

    async def update_task(self, task: Task, fields: Dict[str, Any]) -> Task:
        updates = check_patch(fields, TASK_MUTABLE_FIELDS, "task")
        self._assign(task, **updates)
        return task

    # --- Badges ---

    async def list_badges(self, team_member_id: int) -> List[TeamMemberBadge]:
        badges = self.badges.where(lambda b: b.team_member_id == team_member_id)
        return sorted(badges, key=lambda b: (b.awarded_at, b.id), reverse=True)

    async def award_badge(self, fields: Dict[str, Any]) -> TeamMemberBadge:
        return self.badges.insert(TeamMemberBadge(**fields, awarded_at=datetime.utcnow()))

    async def count_badges_by_member(self) -> Dict[int, int]:
        return dict(Counter(b.team_member_id for b in self.badges.values()))

    # --- Performance ---

    async def get_performance_metric(self, team_member_id: int) -> Optional[PerformanceMetric]:
        matches = self.performance_metrics.where(lambda m: m.team_member_id == team_member_id)
        return matches[0] if matches else None

    async def list_performance_metrics(self) -> List[PerformanceMetric]:
        return list(self.performance_metrics.values())

    async def upsert_performance_metric(
        self, team_member_id: int, fields: Dict[str, Any]
    ) -> PerformanceMetric:
        updates = check_patch(fields, PERFORMANCE_FIELDS, "performance metric")
        metric = await self.get_performance_metric(team_member_id)
        if metric is None:
            metric = self.performance_metrics.insert(
                PerformanceMetric(team_member_id=team_member_id, projects_completed=0)
            )
        self._assign(metric, **updates, last_updated=datetime.utcnow())
        return metric

    async def get_monthly_performance(self, year: int, month: int) -> Optional[MonthlyTeamPerformance]:
        matches = self.monthly_performance.where(lambda r: r.year == year and r.month == month)
        return matches[0] if matches else None

    async def list_monthly_performance(self, year: int) -> List[MonthlyTeamPerformance]:
        rows = self.monthly_performance.where(lambda r: r.year == year)
        return sorted(rows, key=lambda r: r.month)

    async def upsert_monthly_performance(
        self, year: int, month: int, fields: Dict[str, Any]
    ) -> MonthlyTeamPerformance:
        updates = check_patch(fields, MONTHLY_PERFORMANCE_FIELDS, "monthly performance")
        row = await self.get_monthly_performance(year, month)
        if row is None:
            row = self.monthly_performance.insert(
                MonthlyTeamPerformance(year=year, month=month, projects_completed=0)
            )
        self._assign(row, **updates)
        return row

    # --- Aggregates ---

    async def count_projects_by_stage(self) -> Dict[int, int]:
        return dict(Counter(p.current_stage for p in self.projects.values()))

    async def count_projects_by_completion(self) -> Dict[bool, int]:
        completed = sum(1 for p in self.projects.values() if p.is_completed)
        return {True: completed, False: len(self.projects) - completed}

    async def count_projects_by_service_type(self) -> Dict[ServiceType, int]:
        return dict(Counter(p.service_type for p in self.projects.values()))
