"""
Notification dispatcher tests - rendering, recipient selection, and
best-effort delivery with a mocked email sender.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from isp_tracker.config import Settings
from isp_tracker.models import Project, ServiceType, TeamMember, TeamMemberRole
from isp_tracker.services.notifications import (
    EmailSender,
    EventKind,
    NotificationDispatcher,
    describe_event,
    render_message,
    wait_for_deliveries,
)


def make_project(**overrides):
    fields = dict(
        id=1,
        project_code="P-2025-0001",
        customer_name="Acme <Corp>",
        contact_person="Robert Johnson",
        email="info@acme.com",
        phone="555-111-2222",
        address="123 Business Park",
        service_type=ServiceType.FIBER,
        bandwidth=1000,
        assigned_to=1,
        expected_completion="2025-05-30",
        current_stage=2,
    )
    fields.update(overrides)
    return Project(**fields)


def mock_sender(configured=True):
    sender = MagicMock(spec=EmailSender)
    sender.is_configured.return_value = configured
    sender.send = AsyncMock()
    return sender


# ===================== RENDERING =====================


class TestRender:

    def test_describe_event(self):
        project = make_project(current_stage=3)
        assert describe_event(project, EventKind.STAGE) == "Advanced to Stage 3"
        assert describe_event(project, EventKind.DETAILS) == "Project details updated"
        assert describe_event(project, EventKind.DOCUMENT) == "New document added"

    def test_new_project_template(self):
        recipient = TeamMember(name="Pat", role=TeamMemberRole.PROJECT_MANAGER, email="pat@x.com")
        message = render_message(make_project(), recipient, EventKind.CREATED, "http://tracker.local/")

        assert message["subject"] == "New Project Created - P-2025-0001 - Acme <Corp>"
        assert "Hello Pat," in message["html"]
        assert "Acme &lt;Corp&gt;" in message["html"]
        assert "http://tracker.local/#/dashboard" in message["html"]
        assert "Update Type" not in message["html"]

    def test_update_template_names_the_event(self):
        recipient = TeamMember(name="Nia", role=TeamMemberRole.NETWORK_ENGINEER, email="nia@x.com")
        message = render_message(make_project(), recipient, EventKind.STAGE, "http://tracker.local")

        assert message["subject"].startswith("Project Updated - P-2025-0001")
        assert "Advanced to Stage 2" in message["html"]
        assert "fiber" in message["html"]


# ===================== DISPATCH =====================


class TestDispatcher:

    async def test_only_managers_and_engineers_are_notified(self, memory_store):
        sender = mock_sender()
        dispatcher = NotificationDispatcher(memory_store, sender=sender)

        sent = await dispatcher.notify(make_project(), EventKind.STAGE)

        assert sent == 2
        recipients = sorted(call.args[0] for call in sender.send.await_args_list)
        assert recipients == ["nia@isptracker.com", "pat@isptracker.com"]

    async def test_not_configured_is_a_no_op(self, memory_store):
        sender = mock_sender(configured=False)
        dispatcher = NotificationDispatcher(memory_store, sender=sender)

        assert await dispatcher.notify(make_project(), EventKind.CREATED) == 0
        sender.send.assert_not_awaited()

    async def test_delivery_failure_is_swallowed(self, memory_store):
        sender = mock_sender()
        sender.send.side_effect = [ConnectionRefusedError("smtp down"), None]
        dispatcher = NotificationDispatcher(memory_store, sender=sender)

        sent = await dispatcher.notify(make_project(), EventKind.DOCUMENT)

        assert sent == 1
        assert sender.send.await_count == 2

    async def test_recipient_lookup_failure_is_swallowed(self, memory_store):
        sender = mock_sender()
        dispatcher = NotificationDispatcher(memory_store, sender=sender)

        with patch.object(memory_store, "list_team_members_by_roles",
                          AsyncMock(side_effect=RuntimeError("db gone"))):
            assert await dispatcher.notify(make_project(), EventKind.STAGE) == 0

    async def test_member_without_email_is_skipped(self, memory_store):
        memory_store.team_members[1].email = ""
        sender = mock_sender()
        dispatcher = NotificationDispatcher(memory_store, sender=sender)

        assert await dispatcher.notify(make_project(), EventKind.STAGE) == 1

    async def test_dispatch_returns_before_delivery(self, memory_store):
        sender = mock_sender()
        delivered = asyncio.Event()

        async def slow_send(*args):
            await delivered.wait()

        sender.send.side_effect = slow_send
        dispatcher = NotificationDispatcher(memory_store, sender=sender)

        task = await dispatcher.dispatch(make_project(), EventKind.STAGE)
        assert task is not None
        assert not task.done()

        delivered.set()
        assert await task == 2
        await wait_for_deliveries()

    async def test_dispatch_without_configuration_schedules_nothing(self, memory_store):
        dispatcher = NotificationDispatcher(memory_store, sender=mock_sender(configured=False))
        assert await dispatcher.dispatch(make_project(), EventKind.STAGE) is None

    async def test_no_recipients(self):
        from isp_tracker.storage.memory import InMemoryProjectStore

        sender = mock_sender()
        dispatcher = NotificationDispatcher(InMemoryProjectStore(), sender=sender)
        assert await dispatcher.notify(make_project(), EventKind.STAGE) == 0


# ===================== SMTP SENDER =====================


class TestEmailSender:

    @pytest.mark.parametrize("host,port,user,password,expected", [
        ("smtp.example.com", 587, "bot", "secret", True),
        ("", 587, "bot", "secret", False),
        ("smtp.example.com", 0, "bot", "secret", False),
        ("smtp.example.com", 587, "bot", "", False),
    ])
    def test_is_configured(self, host, port, user, password, expected):
        settings = Settings(EMAIL_HOST=host, EMAIL_PORT=port, EMAIL_USER=user, EMAIL_PASSWORD=password)
        assert EmailSender(settings).is_configured() is expected

    async def test_send_uses_starttls(self):
        settings = Settings(EMAIL_HOST="smtp.example.com", EMAIL_PORT=587, EMAIL_USER="bot",
                            EMAIL_PASSWORD="secret", EMAIL_FROM="tracker@example.com")
        with patch("isp_tracker.services.notifications.smtplib.SMTP") as smtp_cls:
            await EmailSender(settings).send("pat@x.com", "Pat", "Hi", "<p>hi</p>")

        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("bot", "secret")
        message = smtp.send_message.call_args.args[0]
        assert message["To"] == "Pat <pat@x.com>"
        assert message["Subject"] == "Hi"
