"""
FastAPI dependencies wiring the store, workflow engine and collaborators together
"""
from fastapi import Depends

from isp_tracker.config import get_settings
from isp_tracker.services.file_storage import LocalFileStorage
from isp_tracker.services.notifications import EmailSender, NotificationDispatcher
from isp_tracker.storage.base import ProjectStore
from isp_tracker.storage.sql import get_store
from isp_tracker.workflow.engine import StageWorkflow


def get_email_sender() -> EmailSender:
    return EmailSender(get_settings())


def get_file_storage() -> LocalFileStorage:
    return LocalFileStorage(get_settings().UPLOAD_DIR)


def get_dispatcher(
    store: ProjectStore = Depends(get_store),
    sender: EmailSender = Depends(get_email_sender),
) -> NotificationDispatcher:
    return NotificationDispatcher(store, sender=sender)


def get_workflow(
    store: ProjectStore = Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> StageWorkflow:
    return StageWorkflow(store, hooks=[dispatcher])


__all__ = [
    "get_store",
    "get_email_sender",
    "get_file_storage",
    "get_dispatcher",
    "get_workflow",
]
