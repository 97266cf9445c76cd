from isp_tracker.models.user import User
from isp_tracker.models.team_member import TeamMember, TeamMemberRole
from isp_tracker.models.project import Project, ProjectDocument, ProjectStageHistory, ServiceType
from isp_tracker.models.task import Task
from isp_tracker.models.badge import TeamMemberBadge, BadgeType
from isp_tracker.models.performance import PerformanceMetric, MonthlyTeamPerformance

__all__ = [
    "User",
    "TeamMember",
    "TeamMemberRole",
    "Project",
    "ProjectDocument",
    "ProjectStageHistory",
    "ServiceType",
    "Task",
    "TeamMemberBadge",
    "BadgeType",
    "PerformanceMetric",
    "MonthlyTeamPerformance",
]
