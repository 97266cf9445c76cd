"""
Project notification emails.

Turns project events (created, details updated, stage advanced, document
added) into templated HTML mail for every Project Manager and Network
Engineer on the team.

Delivery is best-effort: notify() and dispatch() never raise, and dispatch()
hands the SMTP work to a background task so requests do not wait on the
mail server. When SMTP is not configured (EMAIL_HOST / EMAIL_PORT /
EMAIL_USER / EMAIL_PASSWORD in .env) the dispatcher sends nothing.
"""
import asyncio
import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import Enum
from typing import Dict, List, Optional, Set

from isp_tracker.config import Settings, get_settings
from isp_tracker.models import Project, TeamMember, TeamMemberRole
from isp_tracker.storage.base import ProjectStore

logger = logging.getLogger(__name__)

NOTIFY_ROLES = (TeamMemberRole.PROJECT_MANAGER, TeamMemberRole.NETWORK_ENGINEER)


class EventKind(str, Enum):
    CREATED = "created"
    DETAILS = "details"
    STAGE = "stage"
    DOCUMENT = "document"


_LAYOUT = """
<div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto;">
    <div style="background: #4F46E5; color: white; padding: 20px; border-radius: 5px 5px 0 0;">
        <h1 style="margin: 0; font-size: 20px;">{heading}</h1>
    </div>
    <div style="border: 1px solid #ddd; border-top: none; padding: 20px; border-radius: 0 0 5px 5px;">
        <p>Hello {recipient_name},</p>
        <p>{intro}</p>
        <ul>
            <li><strong>Project ID:</strong> {project_code}</li>
            <li><strong>Customer:</strong> {customer_name}</li>
            <li><strong>Service Type:</strong> {service_type}</li>
            <li><strong>Current Stage:</strong> Stage {current_stage}</li>
            {update_line}
        </ul>
        <p>Please review the project and take the necessary actions.</p>
        <a href="{project_url}" style="display: inline-block; background: #4F46E5; color: white;
           text-decoration: none; padding: 10px 20px; border-radius: 5px;">View Project</a>
    </div>
    <p style="margin-top: 20px; font-size: 12px; color: #888;">
        This is an automated message from the ISP Project Management System.
    </p>
</div>
"""

_TEMPLATES: Dict[str, Dict[str, str]] = {
    "new_project": {
        "subject": "New Project Created - {project_code} - {customer_name}",
        "heading": "New Project Created",
        "intro": "A new project has been created and requires your attention:",
    },
    "project_updated": {
        "subject": "Project Updated - {project_code} - {customer_name}",
        "heading": "Project Updated",
        "intro": "A project has been updated and requires your attention:",
    },
}


def describe_event(project: Project, event_kind: EventKind) -> str:
    """Human-readable summary of what happened to the project"""
    if event_kind == EventKind.DETAILS:
        return "Project details updated"
    if event_kind == EventKind.STAGE:
        return f"Advanced to Stage {project.current_stage}"
    if event_kind == EventKind.DOCUMENT:
        return "New document added"
    if event_kind == EventKind.CREATED:
        return "Project created"
    return "General update"


def render_message(
    project: Project, recipient: TeamMember, event_kind: EventKind, app_url: str
) -> Dict[str, str]:
    """Build subject + HTML body for one recipient"""
    template = _TEMPLATES["new_project" if event_kind == EventKind.CREATED else "project_updated"]
    service_type = getattr(project.service_type, "value", project.service_type)
    context = {
        "recipient_name": html.escape(recipient.name or ""),
        "project_code": html.escape(project.project_code or ""),
        "customer_name": html.escape(project.customer_name or ""),
        "service_type": html.escape(str(service_type)),
        "current_stage": project.current_stage,
        "project_url": html.escape(f"{app_url.rstrip('/')}/#/dashboard"),
        "update_line": "",
    }
    if event_kind != EventKind.CREATED:
        context["update_line"] = (
            f"<li><strong>Update Type:</strong> {html.escape(describe_event(project, event_kind))}</li>"
        )

    subject = template["subject"].format(
        project_code=project.project_code, customer_name=project.customer_name
    )
    body = _LAYOUT.format(heading=template["heading"], intro=template["intro"], **context)
    return {"subject": subject, "html": body}


class EmailSender:
    """Thin SMTP client; the blocking send runs in a worker thread"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def is_configured(self) -> bool:
        s = self.settings
        return bool(s.EMAIL_HOST and s.EMAIL_PORT and s.EMAIL_USER and s.EMAIL_PASSWORD)

    def _send_smtp(self, to_email: str, to_name: Optional[str], subject: str, html_body: str) -> None:
        s = self.settings
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = s.EMAIL_FROM
        msg["To"] = f"{to_name} <{to_email}>" if to_name else to_email
        msg.attach(MIMEText(html_body, "html"))

        if s.EMAIL_SECURE:
            with smtplib.SMTP_SSL(s.EMAIL_HOST, s.EMAIL_PORT, timeout=s.EMAIL_TIMEOUT_SECONDS) as smtp:
                smtp.login(s.EMAIL_USER, s.EMAIL_PASSWORD)
                smtp.send_message(msg)
        else:
            with smtplib.SMTP(s.EMAIL_HOST, s.EMAIL_PORT, timeout=s.EMAIL_TIMEOUT_SECONDS) as smtp:
                smtp.starttls()
                smtp.login(s.EMAIL_USER, s.EMAIL_PASSWORD)
                smtp.send_message(msg)

    async def send(self, to_email: str, to_name: Optional[str], subject: str, html_body: str) -> None:
        await asyncio.to_thread(self._send_smtp, to_email, to_name, subject, html_body)


# Deliveries still in flight, held until they finish
_pending_deliveries: Set["asyncio.Task[int]"] = set()


def _delivery_done(task: "asyncio.Task[int]") -> None:
    _pending_deliveries.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Notification delivery task failed: {error}")


async def wait_for_deliveries() -> None:
    """Block until every scheduled delivery has finished (shutdown, tests)"""
    loop = asyncio.get_running_loop()
    while True:
        pending = [t for t in _pending_deliveries if t.get_loop() is loop and not t.done()]
        if not pending:
            return
        await asyncio.gather(*pending, return_exceptions=True)


class NotificationDispatcher:
    """
    Renders and delivers project event emails; failures are logged, never raised.

    Recipients are loaded and messages rendered while the caller's session is
    still open. Only the SMTP round-trips run in the background, so they need
    no database access.
    """

    def __init__(self, store: ProjectStore, sender: Optional[EmailSender] = None,
                 settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()
        self.sender = sender or EmailSender(self.settings)

    async def recipients(self) -> List[TeamMember]:
        return await self.store.list_team_members_by_roles(NOTIFY_ROLES)

    async def build_outbox(self, project: Project, event_kind: EventKind) -> List[Dict[str, str]]:
        """One rendered message per recipient; empty when nothing should be sent"""
        if not self.sender.is_configured():
            logger.debug(f"Email not configured, skipping {event_kind.value} notification "
                         f"for {project.project_code}")
            return []

        try:
            members = await self.recipients()
        except Exception as e:
            logger.error(f"Could not load notification recipients for {project.project_code}: {e}")
            return []

        if not members:
            logger.warning(f"No team members to notify about {project.project_code}")
            return []

        outbox = []
        for member in members:
            if not member.email:
                logger.warning(f"Team member {member.name} has no email address")
                continue
            try:
                message = render_message(project, member, event_kind, self.settings.APP_URL)
            except Exception as e:
                logger.error(f"Could not render {event_kind.value} notification for {member.email}: {e}")
                continue
            outbox.append({
                "to": member.email,
                "name": member.name,
                "subject": message["subject"],
                "html": message["html"],
                "label": f"{event_kind.value} notification for {project.project_code}",
            })
        return outbox

    async def deliver(self, outbox: List[Dict[str, str]]) -> int:
        """Send every message in turn. Returns how many went out."""
        sent = 0
        for message in outbox:
            try:
                await self.sender.send(message["to"], message["name"], message["subject"], message["html"])
                sent += 1
                logger.info(f"{message['label']} sent to {message['to']}")
            except Exception as e:
                logger.error(f"Failed to send {message['label']} to {message['to']}: {e}")
        return sent

    async def notify(self, project: Project, event_kind: EventKind) -> int:
        """Render and send, waiting for delivery. Returns how many emails went out."""
        return await self.deliver(await self.build_outbox(project, event_kind))

    async def dispatch(self, project: Project, event_kind: EventKind) -> Optional["asyncio.Task[int]"]:
        """Render now, send in a background task; returns without waiting for SMTP"""
        outbox = await self.build_outbox(project, event_kind)
        if not outbox:
            return None
        task = asyncio.create_task(self.deliver(outbox))
        _pending_deliveries.add(task)
        task.add_done_callback(_delivery_done)
        return task

    async def __call__(self, project: Project, event_kind: EventKind) -> None:
        await self.dispatch(project, event_kind)
