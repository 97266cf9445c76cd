"""
Stage workflow engine - moves projects through the installation lifecycle.

Every stage change is validated, written together with its history entry
in one commit, and only then announced to the post-commit hooks (email
notifications). A hook that fails is logged and skipped; it can never undo
or fail the change that triggered it.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from isp_tracker.exceptions import NotFoundError, TransitionRejected, ValidationError
from isp_tracker.models import Project, ProjectDocument, ProjectStageHistory
from isp_tracker.services.notifications import EventKind
from isp_tracker.storage.base import ProjectStore
from isp_tracker.workflow.stages import (
    INITIAL_STAGE,
    ProjectStage,
    can_transition,
    default_transition_note,
)

logger = logging.getLogger(__name__)

PostCommitHook = Callable[[Project, EventKind], Awaitable[Any]]

PROJECT_CREATED_NOTE = "Project created"


class StageWorkflow:

    def __init__(self, store: ProjectStore, hooks: Optional[List[PostCommitHook]] = None):
        self.store = store
        self.hooks: List[PostCommitHook] = list(hooks or [])

    async def _get_project(self, project_id: int) -> Project:
        project = await self.store.get_project(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    async def _check_team_member(self, member_id: Optional[int], field: str) -> None:
        if member_id is None:
            return
        if await self.store.get_team_member(member_id) is None:
            raise ValidationError.for_field(field, f"Team member {member_id} does not exist")

    async def _commit(self) -> None:
        try:
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise

    async def _run_hooks(self, project: Project, event_kind: EventKind) -> None:
        for hook in self.hooks:
            try:
                await hook(project, event_kind)
            except Exception as e:
                logger.error(
                    f"Post-commit hook {getattr(hook, '__name__', hook)!r} failed for "
                    f"{project.project_code} ({event_kind.value}): {e}"
                )

    async def start_project(self, fields: Dict[str, Any], created_by: Optional[int] = None) -> Project:
        """Create a project at the Requirements stage with its first history entry"""
        await self._check_team_member(fields.get("assigned_to"), "assignedTo")

        try:
            project = await self.store.create_project(fields)
            await self.store.add_stage_history(
                project.id, INITIAL_STAGE, PROJECT_CREATED_NOTE, created_by
            )
        except Exception:
            await self.store.rollback()
            raise
        await self._commit()
        logger.info(f"Created project {project.project_code} for {project.customer_name}")

        await self._run_hooks(project, EventKind.CREATED)
        return project

    async def advance_stage(
        self,
        project_id: int,
        target_stage: Any,
        notes: Optional[str] = None,
        changed_by: Optional[int] = None,
    ) -> Project:
        """
        Move a project to target_stage.

        Allowed moves are one step forward or back, or straight to Handover
        from any stage. Raises NotFoundError, ValidationError (unknown stage
        or team member) or TransitionRejected; nothing is written when any
        of them is raised.
        """
        project = await self._get_project(project_id)

        target = ProjectStage.parse(target_stage)
        if target is None:
            raise ValidationError.for_field("stage", "Invalid stage value")

        await self._check_team_member(changed_by, "changedBy")

        current = project.current_stage
        if not can_transition(current, target):
            logger.warning(
                f"Rejected stage change for {project.project_code}: {current} -> {int(target)}"
            )
            raise TransitionRejected(current, int(target))

        note = notes.strip() if notes and notes.strip() else default_transition_note(target)

        try:
            project = await self.store.set_project_stage(project, target)
            await self.store.add_stage_history(project.id, target, note, changed_by)
        except Exception:
            await self.store.rollback()
            raise
        await self._commit()
        logger.info(f"Project {project.project_code} moved from stage {current} to {int(target)}")

        await self._run_hooks(project, EventKind.STAGE)
        return project

    async def update_details(self, project_id: int, fields: Dict[str, Any]) -> Project:
        """Apply a general field patch; the stage is never touched here"""
        project = await self._get_project(project_id)
        await self._check_team_member(fields.get("assigned_to"), "assignedTo")

        project = await self.store.update_project(project, fields)
        await self._commit()

        await self._run_hooks(project, EventKind.DETAILS)
        return project

    async def record_document(self, project_id: int, fields: Dict[str, Any]) -> ProjectDocument:
        project = await self._get_project(project_id)

        document = await self.store.add_document({**fields, "project_id": project.id})
        await self._commit()
        logger.info(f"Document {document.name} attached to {project.project_code}")

        await self._run_hooks(project, EventKind.DOCUMENT)
        return document

    async def history(self, project_id: int) -> List[ProjectStageHistory]:
        """Newest first; an unknown project simply has no history"""
        return await self.store.list_stage_history(project_id)
