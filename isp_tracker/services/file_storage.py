"""
Local file storage for uploaded project documents.

Only the returned URL (a path under UPLOAD_DIR) is stored in the database.
"""
import asyncio
import logging
import os
import uuid
from typing import Optional

from isp_tracker.config import get_settings
from isp_tracker.exceptions import DependencyFailure

logger = logging.getLogger(__name__)


def document_type(filename: str, content_type: Optional[str]) -> str:
    """File extension without the dot, falling back to the MIME type"""
    ext = os.path.splitext(filename)[1].lstrip(".").lower()
    return ext or content_type or "application/octet-stream"


class LocalFileStorage:

    def __init__(self, root: Optional[str] = None):
        self.root = root or get_settings().UPLOAD_DIR

    def _write(self, path: str, content: bytes) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(content)

    async def save(self, project_id: int, filename: str, content: bytes) -> str:
        """Write the file and return its storage URL"""
        # stored as <project>/<uuid><ext>, never under the client filename
        ext = os.path.splitext(filename or "file")[1]
        path = os.path.join(self.root, str(project_id), f"{uuid.uuid4().hex}{ext}")
        try:
            await asyncio.to_thread(self._write, path, content)
        except OSError as e:
            logger.error(f"Could not store upload {filename!r} for project {project_id}: {e}")
            raise DependencyFailure("Could not store uploaded file") from e
        return path.replace(os.sep, "/")

    def exists(self, url: str) -> bool:
        return os.path.isfile(url)
