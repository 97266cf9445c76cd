"""
Entity store interface.

The workflow engine, notification dispatcher and reporting layer only talk to
this interface. Two implementations exist:

  SqlProjectStore       - SQLAlchemy AsyncSession (production, storage/sql.py)
  InMemoryProjectStore  - plain dicts with auto-incrementing ids (storage/memory.py)

Lookups by id return None when the record does not exist. Create/update
methods stage changes; nothing is durable until commit() is awaited.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from isp_tracker.exceptions import ValidationError
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

# Fields a general update may touch. Stage, project code, timestamps and the
# completion flag are managed by the store and the workflow engine only.
PROJECT_MUTABLE_FIELDS = frozenset({
    "customer_name",
    "contact_person",
    "email",
    "phone",
    "address",
    "service_type",
    "bandwidth",
    "requirements",
    "assigned_to",
    "expected_completion",
})

TASK_MUTABLE_FIELDS = frozenset({
    "title",
    "description",
    "assigned_to",
    "stage",
    "is_completed",
    "due_date",
})

PERFORMANCE_FIELDS = frozenset({
    "projects_completed",
    "average_completion_time",
    "customer_satisfaction_score",
})

MONTHLY_PERFORMANCE_FIELDS = frozenset({
    "projects_completed",
    "average_completion_time",
    "average_customer_satisfaction",
})


def check_patch(fields: Dict[str, Any], allowed: Iterable[str], entity: str) -> Dict[str, Any]:
    """Reject attempts to write fields outside the entity's mutable set"""
    unknown = sorted(set(fields) - set(allowed))
    if unknown:
        raise ValidationError(
            f"Fields not updatable on {entity}: {', '.join(unknown)}",
            errors=[{"loc": [name], "msg": "Field is not updatable"} for name in unknown],
        )
    return dict(fields)


class ProjectStore(ABC):
    """Capability set for every entity the tracker persists"""

    # --- Transaction ---

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...

    # --- Users ---

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    async def create_user(self, fields: Dict[str, Any]) -> User:
        ...

    # --- Team members ---

    @abstractmethod
    async def list_team_members(self) -> List[TeamMember]:
        ...

    @abstractmethod
    async def get_team_member(self, member_id: int) -> Optional[TeamMember]:
        ...

    @abstractmethod
    async def create_team_member(self, fields: Dict[str, Any]) -> TeamMember:
        ...

    @abstractmethod
    async def list_team_members_by_roles(self, roles: Iterable[TeamMemberRole]) -> List[TeamMember]:
        ...

    # --- Projects ---

    @abstractmethod
    async def list_projects(self) -> List[Project]:
        ...

    @abstractmethod
    async def get_project(self, project_id: int) -> Optional[Project]:
        ...

    @abstractmethod
    async def create_project(self, fields: Dict[str, Any]) -> Project:
        """Insert at the initial stage and assign the P-<year>-<NNNN> code"""

    @abstractmethod
    async def update_project(self, project: Project, fields: Dict[str, Any]) -> Project:
        ...

    @abstractmethod
    async def set_project_stage(self, project: Project, stage: int) -> Project:
        ...

    @abstractmethod
    async def list_projects_by_stage(self, stage: int) -> List[Project]:
        ...

    @abstractmethod
    async def list_projects_by_service_type(self, service_type: ServiceType) -> List[Project]:
        ...

    @abstractmethod
    async def list_projects_by_completion(self, is_completed: bool) -> List[Project]:
        ...

    @abstractmethod
    async def search_projects(self, query: str) -> List[Project]:
        """Case-insensitive substring match on customer, contact, code, address and email"""

    # --- Stage history ---

    @abstractmethod
    async def add_stage_history(
        self, project_id: int, stage: int, notes: Optional[str], changed_by: Optional[int]
    ) -> ProjectStageHistory:
        ...

    @abstractmethod
    async def list_stage_history(self, project_id: int) -> List[ProjectStageHistory]:
        """Newest entry first"""

    # --- Documents ---

    @abstractmethod
    async def add_document(self, fields: Dict[str, Any]) -> ProjectDocument:
        ...

    @abstractmethod
    async def list_documents(self, project_id: int) -> List[ProjectDocument]:
        ...

    @abstractmethod
    async def get_document(self, project_id: int, document_id: int) -> Optional[ProjectDocument]:
        ...

    # --- Tasks ---

    @abstractmethod
    async def list_tasks(self, project_id: int) -> List[Task]:
        ...

    @abstractmethod
    async def get_task(self, task_id: int) -> Optional[Task]:
        ...

    @abstractmethod
    async def create_task(self, fields: Dict[str, Any]) -> Task:
        ...

    @abstractmethod
    async def update_task(self, task: Task, fields: Dict[str, Any]) -> Task:
        ...

    # --- Badges ---

    @abstractmethod
    async def list_badges(self, team_member_id: int) -> List[TeamMemberBadge]:
        ...

    @abstractmethod
    async def award_badge(self, fields: Dict[str, Any]) -> TeamMemberBadge:
        ...

    @abstractmethod
    async def count_badges_by_member(self) -> Dict[int, int]:
        ...

    # --- Performance ---

    @abstractmethod
    async def get_performance_metric(self, team_member_id: int) -> Optional[PerformanceMetric]:
        ...

    @abstractmethod
    async def list_performance_metrics(self) -> List[PerformanceMetric]:
        ...

    @abstractmethod
    async def upsert_performance_metric(
        self, team_member_id: int, fields: Dict[str, Any]
    ) -> PerformanceMetric:
        ...

    @abstractmethod
    async def get_monthly_performance(self, year: int, month: int) -> Optional[MonthlyTeamPerformance]:
        ...

    @abstractmethod
    async def list_monthly_performance(self, year: int) -> List[MonthlyTeamPerformance]:
        """Ordered by month ascending"""

    @abstractmethod
    async def upsert_monthly_performance(
        self, year: int, month: int, fields: Dict[str, Any]
    ) -> MonthlyTeamPerformance:
        ...

    # --- Aggregates ---

    @abstractmethod
    async def count_projects_by_stage(self) -> Dict[int, int]:
        """Only stages that have projects appear in the result"""

    @abstractmethod
    async def count_projects_by_completion(self) -> Dict[bool, int]:
        ...

    @abstractmethod
    async def count_projects_by_service_type(self) -> Dict[ServiceType, int]:
        ...
