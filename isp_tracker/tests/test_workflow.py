"""
Stage workflow unit tests - run against the in-memory store, no database or HTTP.
"""
from unittest.mock import AsyncMock, patch

import pytest

from isp_tracker.exceptions import NotFoundError, TransitionRejected, ValidationError
from isp_tracker.models import ServiceType
from isp_tracker.services import reporting
from isp_tracker.services.notifications import EventKind
from isp_tracker.storage.memory import InMemoryProjectStore
from isp_tracker.workflow.engine import StageWorkflow
from isp_tracker.workflow.stages import (
    ProjectStage,
    can_transition,
    default_transition_note,
    get_stage_info,
    get_stage_percentage,
)


def project_fields(**overrides):
    fields = {
        "customer_name": "Acme Corporation",
        "contact_person": "Robert Johnson",
        "email": "info@acme.com",
        "phone": "555-111-2222",
        "address": "123 Business Park, San Francisco",
        "service_type": ServiceType.FIBER,
        "bandwidth": 1000,
        "requirements": "Redundant path",
        "assigned_to": 1,
        "expected_completion": "2025-05-30",
    }
    fields.update(overrides)
    return fields


class RecordingHook:
    def __init__(self):
        self.calls = []

    async def __call__(self, project, event_kind):
        self.calls.append((project.id, event_kind))


class ExplodingHook:
    async def __call__(self, project, event_kind):
        raise RuntimeError("mail server on fire")


# ===================== STAGE RULES =====================


class TestStageRules:

    @pytest.mark.parametrize("current,target", [(1, 2), (2, 1), (3, 4), (4, 3), (2, 2), (1, 5), (3, 5), (5, 4)])
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current,target", [(1, 3), (1, 4), (4, 2), (5, 3), (5, 1)])
    def test_rejected(self, current, target):
        assert not can_transition(current, target)

    def test_parse(self):
        assert ProjectStage.parse("3") is ProjectStage.CONFIRMATION
        assert ProjectStage.parse(5) is ProjectStage.HANDOVER
        assert ProjectStage.parse(0) is None
        assert ProjectStage.parse(6) is None
        assert ProjectStage.parse("survey") is None
        assert ProjectStage.parse(None) is None
        assert ProjectStage.parse(True) is None

    def test_stage_info(self):
        assert get_stage_info(1)["label"] == "Requirements"
        assert [get_stage_percentage(s) for s in ProjectStage] == [20, 40, 60, 80, 100]
        assert get_stage_info(42)["label"] == "Unknown"
        assert get_stage_percentage(42) == 0

    def test_default_note(self):
        assert default_transition_note(ProjectStage.SURVEY) == "Advanced to Survey"


# ===================== PROJECT CREATION =====================


class TestStartProject:

    async def test_new_project_starts_at_requirements(self, memory_store):
        workflow = StageWorkflow(memory_store)
        project = await workflow.start_project(project_fields())

        assert project.current_stage == ProjectStage.REQUIREMENTS
        assert project.is_completed is False
        history = await workflow.history(project.id)
        assert len(history) == 1
        assert history[0].stage == ProjectStage.REQUIREMENTS
        assert history[0].notes == "Project created"

    async def test_project_code_from_id(self, memory_store):
        workflow = StageWorkflow(memory_store)
        first = await workflow.start_project(project_fields())
        second = await workflow.start_project(project_fields(customer_name="Beta LLC"))

        year = first.created_at.year
        assert first.project_code == f"P-{year}-0001"
        assert second.project_code == f"P-{year}-0002"

    async def test_unknown_assignee_rejected(self, memory_store):
        workflow = StageWorkflow(memory_store)
        with pytest.raises(ValidationError) as exc:
            await workflow.start_project(project_fields(assigned_to=99))
        assert exc.value.errors[0]["loc"] == ["assignedTo"]
        assert memory_store.projects == {}

    async def test_created_hook_fires_after_commit(self, memory_store):
        hook = RecordingHook()
        workflow = StageWorkflow(memory_store, hooks=[hook])
        commits = memory_store.commits
        project = await workflow.start_project(project_fields())

        assert hook.calls == [(project.id, EventKind.CREATED)]
        assert memory_store.commits == commits + 1


# ===================== STAGE TRANSITIONS =====================


class TestAdvanceStage:

    async def test_single_step_forward(self, memory_store):
        workflow = StageWorkflow(memory_store)
        project = await workflow.start_project(project_fields())

        project = await workflow.advance_stage(project.id, 2, notes="site confirmed", changed_by=2)

        assert project.current_stage == ProjectStage.SURVEY
        assert project.is_completed is False
        history = await workflow.history(project.id)
        assert len(history) == 2
        assert history[0].stage == 2
        assert history[0].notes == "site confirmed"
        assert history[0].changed_by == 2

    async def test_default_note_when_blank(self, memory_store):
        workflow = StageWorkflow(memory_store)
        project = await workflow.start_project(project_fields())

        await workflow.advance_stage(project.id, 2, notes="   ")

        history = await workflow.history(project.id)
        assert history[0].notes == "Advanced to Survey"

    async def test_jump_rejected_and_nothing_written(self, memory_store):
        workflow = StageWorkflow(memory_store)
        project = await workflow.start_project(project_fields())
        commits = memory_store.commits

        with pytest.raises(TransitionRejected):
            await workflow.advance_stage(project.id, ProjectStage.INSTALLATION)

        assert project.current_stage == 1
        assert len(await workflow.history(project.id)) == 1
        assert memory_store.commits == commits

    async def test_failed_history_write_rolls_back_stage(self, memory_store):
        workflow = StageWorkflow(memory_store)
        project = await workflow.start_project(project_fields())

        with patch.object(memory_store, "add_stage_history",
                          AsyncMock(side_effect=RuntimeError("disk full"))):
            with pytest.raises(RuntimeError):
                await workflow.advance_stage(project.id, ProjectStage.SURVEY)

        project = await memory_store.get_project(project.id)
        assert project.current_stage == 1
        assert len(await workflow.history(project.id)) == 1

    async def test_failed_create_leaves_no_project(self, memory_store):
        workflow = StageWorkflow(memory_store)

        with patch.object(memory_store, "add_stage_history",
                          AsyncMock(side_effect=RuntimeError("disk full"))):
            with pytest.raises(RuntimeError):
                await workflow.start_project(project_fields())

        assert memory_store.projects == {}
        assert len(memory_store.team_members) == 3

    async def test_handover_from_anywhere(self, memory_store):
        workflow = StageWorkflow(memory_store)
        project = await workflow.start_project(project_fields())

        project = await workflow.advance_stage(project.id, ProjectStage.HANDOVER)

        assert project.current_stage == 5
        assert project.is_completed is True
        assert (await workflow.history(project.id))[0].notes == "Advanced to Handover"

    async def test_step_back(self, memory_store):
        workflow = StageWorkflow(memory_store)
        project = await workflow.start_project(project_fields())
        await workflow.advance_stage(project.id, 2)
        project = await workflow.advance_stage(project.id, 1, notes="survey cancelled")

        assert project.current_stage == 1
        stages = [h.stage for h in reversed(await workflow.history(project.id))]
        assert stages == [1, 2, 1]

    async def test_history_reconstructs_progression(self, memory_store):
        workflow = StageWorkflow(memory_store)
        project = await workflow.start_project(project_fields())
        for stage in (2, 3, 4, 5):
            await workflow.advance_stage(project.id, stage)

        stages = [h.stage for h in reversed(await workflow.history(project.id))]
        assert stages == [1, 2, 3, 4, 5]

    async def test_unknown_project(self, memory_store):
        workflow = StageWorkflow(memory_store)
        with pytest.raises(NotFoundError):
            await workflow.advance_stage(404, 2)

    @pytest.mark.parametrize("target", [0, 6, "abc", None])
    async def test_invalid_stage_value(self, memory_store, target):
        workflow = StageWorkflow(memory_store)
        project = await workflow.start_project(project_fields())
        with pytest.raises(ValidationError):
            await workflow.advance_stage(project.id, target)

    async def test_unknown_changed_by(self, memory_store):
        workflow = StageWorkflow(memory_store)
        project = await workflow.start_project(project_fields())
        with pytest.raises(ValidationError):
            await workflow.advance_stage(project.id, 2, changed_by=77)
        assert project.current_stage == 1

    async def test_failing_hook_does_not_undo_transition(self, memory_store):
        recorder = RecordingHook()
        workflow = StageWorkflow(memory_store, hooks=[ExplodingHook(), recorder])
        project = await workflow.start_project(project_fields())

        project = await workflow.advance_stage(project.id, 2)

        assert project.current_stage == 2
        assert len(await workflow.history(project.id)) == 2
        assert recorder.calls[-1] == (project.id, EventKind.STAGE)


# ===================== DETAILS / DOCUMENTS =====================


class TestDetailsAndDocuments:

    async def test_update_details_keeps_stage(self, memory_store):
        hook = RecordingHook()
        workflow = StageWorkflow(memory_store, hooks=[hook])
        project = await workflow.start_project(project_fields())

        project = await workflow.update_details(project.id, {"bandwidth": 2000, "assigned_to": 2})

        assert project.bandwidth == 2000
        assert project.assigned_to == 2
        assert project.current_stage == 1
        assert len(await workflow.history(project.id)) == 1
        assert hook.calls[-1] == (project.id, EventKind.DETAILS)

    async def test_update_details_rejects_stage_field(self, memory_store):
        workflow = StageWorkflow(memory_store)
        project = await workflow.start_project(project_fields())
        with pytest.raises(ValidationError):
            await workflow.update_details(project.id, {"current_stage": 5})
        assert project.current_stage == 1

    async def test_record_document(self, memory_store):
        hook = RecordingHook()
        workflow = StageWorkflow(memory_store, hooks=[hook])
        project = await workflow.start_project(project_fields())

        doc = await workflow.record_document(project.id, {
            "name": "survey.pdf", "type": "pdf", "url": "uploads/1/abc.pdf",
        })

        assert doc.project_id == project.id
        assert [d.id for d in await memory_store.list_documents(project.id)] == [doc.id]
        assert hook.calls[-1] == (project.id, EventKind.DOCUMENT)

    async def test_history_of_unknown_project_is_empty(self, memory_store):
        workflow = StageWorkflow(memory_store)
        assert await workflow.history(12345) == []


# ===================== STORE QUERIES / REPORTING =====================


class TestQueriesAndReporting:

    async def test_search_is_case_insensitive(self, memory_store):
        workflow = StageWorkflow(memory_store)
        await workflow.start_project(project_fields())
        await workflow.start_project(project_fields(
            customer_name="Globex", address="Springfield", email="ops@globex.com",
        ))

        assert [p.customer_name for p in await memory_store.search_projects("acme")] == ["Acme Corporation"]
        assert len(await memory_store.search_projects("SPRINGFIELD")) == 1
        assert len(await memory_store.search_projects("p-")) == 2

    async def test_search_matches_email_only(self, memory_store):
        workflow = StageWorkflow(memory_store)
        await workflow.start_project(project_fields())
        await workflow.start_project(project_fields(customer_name="Initech", email="billing@initrode.net"))

        matches = await memory_store.search_projects("Initrode")
        assert [p.customer_name for p in matches] == ["Initech"]

    async def test_stage_counts_always_have_five_keys(self):
        store = InMemoryProjectStore()
        counts = await reporting.stage_counts(store)
        assert counts == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}

    async def test_stage_counts_idempotent(self, memory_store):
        workflow = StageWorkflow(memory_store)
        p = await workflow.start_project(project_fields())
        await workflow.start_project(project_fields())
        await workflow.advance_stage(p.id, 5)

        first = await reporting.stage_counts(memory_store)
        second = await reporting.stage_counts(memory_store)
        assert first == second == {1: 1, 2: 0, 3: 0, 4: 0, 5: 1}
        assert await reporting.status_split(memory_store) == {"active": 1, "completed": 1, "total": 2}

    async def test_monthly_upsert_keeps_one_row(self, memory_store):
        await memory_store.upsert_monthly_performance(2025, 3, {"projects_completed": 2})
        await memory_store.upsert_monthly_performance(2025, 3, {"projects_completed": 5})

        rows = await reporting.monthly_performance(memory_store, 2025)
        assert len(rows) == 1
        assert rows[0].projects_completed == 5

    async def test_leaderboard_order(self, memory_store):
        await memory_store.upsert_performance_metric(2, {"projects_completed": 7})
        await memory_store.upsert_performance_metric(1, {"projects_completed": 3})

        rows = await reporting.team_leaderboard(memory_store)
        assert [r["teamMemberId"] for r in rows] == [2, 1, 3]
        assert rows[-1]["projectsCompleted"] == 0
