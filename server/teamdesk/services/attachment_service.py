"""
Supporting documents attached to leave applications.
"""
import logging
import uuid
from pathlib import PurePosixPath
from typing import Iterable, List, Optional, Sequence

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.config import settings
from teamdesk.core.exceptions import AuthorizationError, InfrastructureError, ValidationError
from teamdesk.models.audit_log import LeaveAuditAction
from teamdesk.models.leave_request import LeaveAttachment
from teamdesk.models.user import User
from teamdesk.schemas.leave_request import LeaveAttachmentResponse
from teamdesk.services.file_store import LocalFileStore
from teamdesk.services.leave_store import (
    add_audit_entry,
    ensure_leave_access,
    get_visible_attachment,
    get_visible_leave,
    list_visible_attachments,
    to_attachment_response,
    transactional,
)

logger = logging.getLogger(__name__)

ATTACHMENT_FOLDER = "leaves"


class AttachmentManager:
    def __init__(
        self,
        file_store: LocalFileStore,
        allowed_extensions: Optional[Sequence[str]] = None,
        max_size_bytes: Optional[int] = None,
    ):
        self.file_store = file_store
        self.allowed_extensions = set(
            allowed_extensions if allowed_extensions is not None else settings.ALLOWED_ATTACHMENT_EXTENSIONS
        )
        self.max_size_bytes = max_size_bytes if max_size_bytes is not None else settings.max_attachment_size_bytes

    @classmethod
    def from_settings(cls) -> "AttachmentManager":
        return cls(LocalFileStore.from_settings())

    def validate_file(self, filename: Optional[str], size: int) -> None:
        """Raise ValidationError unless the file is non-empty, of an allowed type and small enough."""
        if not filename:
            raise ValidationError("File name is required")
        if size == 0:
            raise ValidationError("File is empty")

        extension = PurePosixPath(filename).suffix.lower()
        if extension not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            raise ValidationError(f"File type not allowed. Allowed types: {allowed}")

        if size > self.max_size_bytes:
            max_mb = self.max_size_bytes / (1024 * 1024)
            raise ValidationError(f"File size exceeds maximum allowed size of {max_mb:g}MB")

    @transactional("upload_attachment")
    async def upload(
        self,
        db: AsyncSession,
        leave_id: uuid.UUID,
        file: UploadFile,
        uploader: User,
    ) -> LeaveAttachmentResponse:
        leave = await get_visible_leave(db, leave_id)
        if leave.user_id != uploader.id and not uploader.is_approver:
            raise AuthorizationError("You can only upload attachments to your own leave applications")

        if file.size is not None:
            self.validate_file(file.filename, file.size)
        # Read at most one byte past the limit
        content = await file.read(self.max_size_bytes + 1)
        self.validate_file(file.filename, len(content))

        try:
            file_path = await self.file_store.save(content, file.filename, ATTACHMENT_FOLDER)
        except OSError:
            logger.error(f"Failed to store attachment {file.filename} for leave {leave_id}", exc_info=True)
            raise InfrastructureError()

        attachment = LeaveAttachment(
            id=uuid.uuid4(),
            leave_id=leave.id,
            file_name=PurePosixPath(file_path).name,
            original_file_name=file.filename,
            file_type=file.content_type or "application/octet-stream",
            file_path=file_path,
            file_url=self.file_store.url(file_path),
            file_size=len(content),
            uploaded_by_id=uploader.id,
            is_active=True,
        )
        db.add(attachment)
        add_audit_entry(db, leave.id, LeaveAuditAction.ATTACHMENT_ADDED, uploader.id, file.filename)

        try:
            await db.commit()
        except SQLAlchemyError:
            # Row never landed, so the stored bytes are orphaned
            await self.discard_files([file_path])
            raise

        logger.info(f"Attachment {attachment.id} ({file.filename}) added to leave {leave.id} by user {uploader.id}")
        return to_attachment_response(attachment, uploaded_by=uploader)

    @transactional("delete_attachment")
    async def delete(
        self,
        db: AsyncSession,
        leave_id: uuid.UUID,
        attachment_id: uuid.UUID,
        actor: User,
    ) -> None:
        leave = await get_visible_leave(db, leave_id)
        attachment = await get_visible_attachment(db, leave.id, attachment_id)
        if actor.id not in (leave.user_id, attachment.uploaded_by_id) and not actor.is_approver:
            raise AuthorizationError("You do not have permission to delete this attachment")

        attachment.is_active = False
        add_audit_entry(
            db, leave.id, LeaveAuditAction.ATTACHMENT_REMOVED, actor.id, attachment.original_file_name
        )
        await db.commit()
        logger.info(f"Attachment {attachment.id} removed from leave {leave.id} by user {actor.id}")

        await self.discard_files([attachment.file_path])

    @transactional("list_attachments")
    async def list(
        self,
        db: AsyncSession,
        leave_id: uuid.UUID,
        actor: User,
    ) -> List[LeaveAttachmentResponse]:
        leave = await get_visible_leave(db, leave_id)
        ensure_leave_access(leave, actor)
        attachments = await list_visible_attachments(db, leave.id)
        return [to_attachment_response(a) for a in attachments]

    async def discard_files(self, paths: Iterable[str]) -> None:
        """Best-effort physical deletion; failures are logged, never raised."""
        for path in paths:
            try:
                removed = await self.file_store.delete(path)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to delete stored file {path}: {e}")
                continue
            if not removed:
                logger.warning(f"Stored file {path} was already missing")
