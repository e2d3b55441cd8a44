"""
Local disk storage for uploaded files.
"""
import logging
import uuid
from pathlib import Path, PurePosixPath

import aiofiles
import aiofiles.os

from teamdesk.core.config import settings

logger = logging.getLogger(__name__)


class LocalFileStore:
    """Stores files under a root directory and serves them below ``{base_url}/uploads``."""

    def __init__(self, root: str, base_url: str):
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls) -> "LocalFileStore":
        return cls(settings.UPLOAD_ROOT, settings.FILE_BASE_URL)

    def _absolute(self, path: str) -> Path:
        full_path = (self.root / path).resolve()
        if self.root not in full_path.parents:
            raise ValueError(f"Path escapes upload root: {path}")
        return full_path

    async def save(self, content: bytes, original_filename: str, folder: str) -> str:
        """
        Write bytes under ``folder`` with a unique name.

        Returns:
            Relative storage path, e.g. ``leaves/3f2c....pdf``
        """
        extension = PurePosixPath(original_filename).suffix.lower()
        relative_path = f"{folder}/{uuid.uuid4()}{extension}"
        full_path = self._absolute(relative_path)

        await aiofiles.os.makedirs(full_path.parent, exist_ok=True)
        async with aiofiles.open(full_path, "wb") as f:
            await f.write(content)

        logger.info(f"Stored file {original_filename} at {relative_path} ({len(content)} bytes)")
        return relative_path

    def url(self, path: str) -> str:
        return f"{self.base_url}/uploads/{path}"

    async def delete(self, path: str) -> bool:
        """Remove a stored file. Returns False when it was already gone."""
        full_path = self._absolute(path)
        if not await aiofiles.os.path.exists(full_path):
            return False
        await aiofiles.os.remove(full_path)
        logger.info(f"Deleted stored file {path}")
        return True
