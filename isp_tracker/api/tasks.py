"""
Task API endpoints - updates addressed by task id
"""
from fastapi import APIRouter, Depends, HTTPException

from isp_tracker.api.auth import get_current_user
from isp_tracker.api.deps import get_store
from isp_tracker.api.schemas import TaskResponse, TaskUpdate, build_task_response
from isp_tracker.exceptions import ValidationError
from isp_tracker.models.user import User
from isp_tracker.storage.base import ProjectStore

router = APIRouter()


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    data: TaskUpdate,
    store: ProjectStore = Depends(get_store),
    current_user: User = Depends(get_current_user),
):
    """Update a task (title, assignee, stage, completion, due date)"""
    task = await store.get_task(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")

    updates = data.to_patch()
    if "assigned_to" in updates and not await store.get_team_member(updates["assigned_to"]):
        raise ValidationError.for_field(
            "assignedTo", f"Team member {updates['assigned_to']} does not exist"
        )

    task = await store.update_task(task, updates)
    await store.commit()
    return build_task_response(task)
