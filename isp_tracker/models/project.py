"""
Project models - service installations, their documents and stage audit trail
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.ext.hybrid import hybrid_property
from datetime import datetime
from enum import Enum
from isp_tracker.database import Base
from isp_tracker.workflow.stages import ProjectStage, TERMINAL_STAGE


class ServiceType(str, Enum):
    FIBER = "fiber"
    WIRELESS = "wireless"


def format_project_code(year: int, sequence: int) -> str:
    """P-<year>-<sequence padded to 4 digits>"""
    return f"P-{year}-{sequence:04d}"


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    # Assigned inside the creating transaction from the row id, never changed afterwards
    project_code = Column(String, unique=True, nullable=True, index=True)

    customer_name = Column(String, nullable=False)
    contact_person = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    address = Column(Text, nullable=False)

    service_type = Column(SQLEnum(ServiceType, native_enum=False), nullable=False)
    bandwidth = Column(Integer, nullable=False)  # Mbps
    requirements = Column(Text, nullable=True)

    assigned_to = Column(Integer, ForeignKey("team_members.id"), nullable=False)
    expected_completion = Column(String, nullable=False)

    current_stage = Column(Integer, nullable=False, default=int(ProjectStage.REQUIREMENTS))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @hybrid_property
    def is_completed(self):
        return self.current_stage == int(TERMINAL_STAGE)


class ProjectStageHistory(Base):
    """Append-only record of every stage a project entered"""
    __tablename__ = "project_stage_history"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    stage = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    changed_by = Column(Integer, ForeignKey("team_members.id"), nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)


class ProjectDocument(Base):
    __tablename__ = "project_documents"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # extension or MIME tag
    url = Column(String, nullable=False)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)
