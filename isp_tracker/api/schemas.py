"""
Shared Pydantic schemas.

JSON uses camelCase (customerName, currentStage, ...); request bodies accept
either camelCase or snake_case keys. Update schemas list exactly the fields
a client may change - stage, project code, timestamps and completion flags
are rejected.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from isp_tracker.models import (
    Project,
    ProjectDocument,
    ProjectStageHistory,
    ServiceType,
    Task,
)
from isp_tracker.workflow.stages import get_stage_info


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PatchModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def to_patch(self) -> dict:
        """Only the fields the client actually sent"""
        return self.model_dump(exclude_unset=True)


def _reject_null(value):
    if value is None:
        raise ValueError("Field may not be null")
    return value


# --- Projects ---

class ProjectResponse(CamelModel):
    id: int
    project_code: Optional[str] = Field(default=None, alias="projectId")
    customer_name: str
    contact_person: str
    email: str
    phone: str
    address: str
    service_type: ServiceType
    bandwidth: int
    requirements: Optional[str] = None
    assigned_to: int
    expected_completion: str
    current_stage: int
    is_completed: bool
    stage_label: str
    stage_percentage: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectCreate(CamelModel):
    customer_name: str = Field(min_length=1)
    contact_person: str = Field(min_length=1)
    email: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    address: str = Field(min_length=1)
    service_type: ServiceType
    bandwidth: int = Field(gt=0)
    requirements: Optional[str] = None
    assigned_to: int
    expected_completion: str = Field(min_length=1)


class ProjectUpdate(PatchModel):
    customer_name: Optional[str] = Field(default=None, min_length=1)
    contact_person: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)
    service_type: Optional[ServiceType] = None
    bandwidth: Optional[int] = Field(default=None, gt=0)
    requirements: Optional[str] = None
    assigned_to: Optional[int] = None
    expected_completion: Optional[str] = Field(default=None, min_length=1)

    @field_validator(
        "customer_name", "contact_person", "email", "phone", "address",
        "service_type", "bandwidth", "assigned_to", "expected_completion",
    )
    @classmethod
    def not_null(cls, value):
        return _reject_null(value)


class StageChange(CamelModel):
    stage: int
    notes: Optional[str] = None
    changed_by: Optional[int] = None


def build_project_response(p: Project) -> ProjectResponse:
    info = get_stage_info(p.current_stage)
    return ProjectResponse(
        id=p.id,
        project_code=p.project_code,
        customer_name=p.customer_name,
        contact_person=p.contact_person,
        email=p.email,
        phone=p.phone,
        address=p.address,
        service_type=p.service_type,
        bandwidth=p.bandwidth,
        requirements=p.requirements,
        assigned_to=p.assigned_to,
        expected_completion=p.expected_completion,
        current_stage=p.current_stage,
        is_completed=bool(p.is_completed),
        stage_label=info["label"],
        stage_percentage=info["percentage"],
        created_at=p.created_at,
        updated_at=p.updated_at,
    )


# --- Stage history ---

class StageHistoryResponse(CamelModel):
    id: int
    project_id: int
    stage: int
    stage_label: str
    notes: Optional[str] = None
    changed_by: Optional[int] = None
    timestamp: datetime


def build_history_response(h: ProjectStageHistory) -> StageHistoryResponse:
    return StageHistoryResponse(
        id=h.id,
        project_id=h.project_id,
        stage=h.stage,
        stage_label=get_stage_info(h.stage)["label"],
        notes=h.notes,
        changed_by=h.changed_by,
        timestamp=h.timestamp,
    )


# --- Documents ---

class DocumentResponse(CamelModel):
    id: int
    project_id: int
    name: str
    type: str
    url: str
    uploaded_at: datetime


def build_document_response(d: ProjectDocument) -> DocumentResponse:
    return DocumentResponse(
        id=d.id,
        project_id=d.project_id,
        name=d.name,
        type=d.type,
        url=d.url,
        uploaded_at=d.uploaded_at,
    )


# --- Tasks ---

class TaskResponse(CamelModel):
    id: int
    project_id: int
    title: str
    description: Optional[str] = None
    assigned_to: int
    stage: int
    is_completed: bool
    due_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class TaskCreate(CamelModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    assigned_to: int
    stage: int = Field(ge=1, le=5)
    is_completed: bool = False
    due_date: Optional[datetime] = None


class TaskUpdate(PatchModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    assigned_to: Optional[int] = None
    stage: Optional[int] = Field(default=None, ge=1, le=5)
    is_completed: Optional[bool] = None
    due_date: Optional[datetime] = None

    @field_validator("title", "assigned_to", "stage", "is_completed")
    @classmethod
    def not_null(cls, value):
        return _reject_null(value)


def build_task_response(t: Task) -> TaskResponse:
    return TaskResponse(
        id=t.id,
        project_id=t.project_id,
        title=t.title,
        description=t.description,
        assigned_to=t.assigned_to,
        stage=t.stage,
        is_completed=bool(t.is_completed),
        due_date=t.due_date,
        created_at=t.created_at,
    )
