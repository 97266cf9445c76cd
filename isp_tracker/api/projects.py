"""
Projects API endpoints - installation projects, stage workflow, documents, tasks
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import FileResponse

from isp_tracker.api.auth import get_current_user
from isp_tracker.api.deps import get_file_storage, get_store, get_workflow
from isp_tracker.api.schemas import (
    DocumentResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
    StageChange,
    StageHistoryResponse,
    TaskCreate,
    TaskResponse,
    build_document_response,
    build_history_response,
    build_project_response,
    build_task_response,
)
from isp_tracker.exceptions import ValidationError
from isp_tracker.models import ServiceType
from isp_tracker.models.user import User
from isp_tracker.services.file_storage import LocalFileStorage, document_type
from isp_tracker.storage.base import ProjectStore
from isp_tracker.workflow.engine import StageWorkflow
from isp_tracker.workflow.stages import ProjectStage

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Project Endpoints ---

@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    """List all projects, most recently updated first"""
    projects = await store.list_projects()
    return [build_project_response(p) for p in projects]


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    workflow: StageWorkflow = Depends(get_workflow),
    current_user: User = Depends(get_current_user),
):
    """Create a new project at the Requirements stage"""
    project = await workflow.start_project(data.model_dump())
    return build_project_response(project)


@router.get("/stage/{stage}", response_model=List[ProjectResponse])
async def list_projects_by_stage(
    stage: str,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    parsed = ProjectStage.parse(stage)
    if parsed is None:
        raise HTTPException(status_code=400, detail="Invalid stage value")
    projects = await store.list_projects_by_stage(parsed)
    return [build_project_response(p) for p in projects]


@router.get("/service/{service_type}", response_model=List[ProjectResponse])
async def list_projects_by_service_type(
    service_type: str,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    try:
        parsed = ServiceType(service_type.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid service type")
    projects = await store.list_projects_by_service_type(parsed)
    return [build_project_response(p) for p in projects]


@router.get("/status/{project_status}", response_model=List[ProjectResponse])
async def list_projects_by_status(
    project_status: str,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    """'completed' lists finished projects; any other value lists active ones"""
    projects = await store.list_projects_by_completion(project_status == "completed")
    return [build_project_response(p) for p in projects]


@router.get("/search/{query}", response_model=List[ProjectResponse])
async def search_projects(
    query: str,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    projects = await store.search_projects(query)
    return [build_project_response(p) for p in projects]


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    project = await store.get_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return build_project_response(project)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    data: ProjectUpdate,
    workflow: StageWorkflow = Depends(get_workflow),
    current_user: User = Depends(get_current_user),
):
    """Update project details (use the /stage endpoint to change stage)"""
    project = await workflow.update_details(project_id, data.to_patch())
    return build_project_response(project)


@router.post("/{project_id}/stage", response_model=ProjectResponse)
async def change_stage(
    project_id: int,
    data: StageChange,
    workflow: StageWorkflow = Depends(get_workflow),
    current_user: User = Depends(get_current_user),
):
    """Advance (or step back) a project's stage and record it in the history"""
    project = await workflow.advance_stage(
        project_id, data.stage, notes=data.notes, changed_by=data.changed_by
    )
    return build_project_response(project)


@router.get("/{project_id}/history", response_model=List[StageHistoryResponse])
async def get_stage_history(
    project_id: int,
    workflow: StageWorkflow = Depends(get_workflow),
    current_user: User = Depends(get_current_user),
):
    """Stage audit trail, newest first"""
    history = await workflow.history(project_id)
    return [build_history_response(h) for h in history]


# --- Document Endpoints ---

@router.get("/{project_id}/documents", response_model=List[DocumentResponse])
async def list_documents(
    project_id: int,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    if not await store.get_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    documents = await store.list_documents(project_id)
    return [build_document_response(d) for d in documents]


@router.post("/{project_id}/documents", response_model=DocumentResponse,
             status_code=status.HTTP_201_CREATED)
async def upload_document(
    project_id: int,
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    store: ProjectStore = Depends(get_store),
    workflow: StageWorkflow = Depends(get_workflow),
    file_storage: LocalFileStorage = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    """Upload a document; the file goes to file storage, the pointer to the database"""
    if not await store.get_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")

    filename = file.filename or ""
    if not filename:
        raise ValidationError.for_field("file", "No file uploaded")

    content = await file.read()
    url = await file_storage.save(project_id, filename, content)

    document = await workflow.record_document(project_id, {
        "name": name or filename,
        "type": document_type(filename, file.content_type),
        "url": url,
    })
    return build_document_response(document)


@router.get("/{project_id}/documents/{document_id}/download")
async def download_document(
    project_id: int,
    document_id: int,
    store: ProjectStore = Depends(get_store),
    file_storage: LocalFileStorage = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    document = await store.get_document(project_id, document_id)
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")

    if not file_storage.exists(document.url):
        raise HTTPException(status_code=404, detail="File not found on disk")

    return FileResponse(path=document.url, filename=document.name)


# --- Task Endpoints ---

@router.get("/{project_id}/tasks", response_model=List[TaskResponse])
async def list_tasks(
    project_id: int,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    if not await store.get_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    tasks = await store.list_tasks(project_id)
    return [build_task_response(t) for t in tasks]


@router.post("/{project_id}/tasks", response_model=TaskResponse,
             status_code=status.HTTP_201_CREATED)
async def create_task(
    project_id: int,
    data: TaskCreate,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    """Add a task to a project"""
    if not await store.get_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    if not await store.get_team_member(data.assigned_to):
        raise ValidationError.for_field("assignedTo", f"Team member {data.assigned_to} does not exist")

    task = await store.create_task({**data.model_dump(), "project_id": project_id})
    await store.commit()
    return build_task_response(task)
