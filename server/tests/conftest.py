import os
import tempfile

# Settings are read at import time, so the environment has to be ready first
_TMP_DIR = tempfile.mkdtemp(prefix="teamdesk-tests-")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_DIR", os.path.join(_TMP_DIR, "logs"))
os.environ.setdefault("UPLOAD_ROOT", os.path.join(_TMP_DIR, "uploads"))

import uuid
from datetime import date
from typing import AsyncGenerator

import pytest
from fastapi import HTTPException, status
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from teamdesk.core.database import Base, get_db
from teamdesk.core.dependencies import get_current_user, get_leave_workflow
from teamdesk.main import app
from teamdesk.models.leave_request import LeaveRequest, LeaveStatus, LeaveType
from teamdesk.models.user import User, UserRole, UserStatus
from teamdesk.services.attachment_service import AttachmentManager
from teamdesk.services.file_store import LocalFileStore
from teamdesk.services.leave_service import LeaveWorkflow
from teamdesk.services.notification_service import drain_notifications

TODAY = date(2025, 6, 1)


class RecordingSink:
    """Notification sink that keeps events in memory."""

    def __init__(self):
        self.user_events = []
        self.role_events = []

    async def notify_user(self, user_id, event):
        self.user_events.append((user_id, event))

    async def notify_role(self, role, event):
        self.role_events.append((role, event))


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await drain_notifications()
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def file_store(tmp_path) -> LocalFileStore:
    return LocalFileStore(str(tmp_path / "uploads"), "http://testserver")


@pytest.fixture
def workflow(sink, file_store) -> LeaveWorkflow:
    return LeaveWorkflow(
        notifier=sink,
        attachments=AttachmentManager(file_store),
        clock=lambda: TODAY,
        balance_enforced_types=["annual"],
    )


@pytest.fixture
def make_user(session_factory):
    """Users are created in their own session so workflow rollbacks never expire them."""
    async def _make_user(role: UserRole = UserRole.STAFF, first_name: str = "Sam", last_name: str = "Tester") -> User:
        user = User(
            id=uuid.uuid4(),
            first_name=first_name,
            last_name=last_name,
            email=f"{first_name.lower()}.{uuid.uuid4().hex[:8]}@test.com",
            role=role,
            status=UserStatus.ACTIVE,
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return user
    return _make_user


@pytest.fixture
async def staff(make_user) -> User:
    return await make_user(UserRole.STAFF, "Sam")


@pytest.fixture
async def other_staff(make_user) -> User:
    return await make_user(UserRole.STAFF, "Olive")


@pytest.fixture
async def manager(make_user) -> User:
    return await make_user(UserRole.MANAGER, "Max")


@pytest.fixture
async def admin(make_user) -> User:
    return await make_user(UserRole.ADMIN, "Ada")


@pytest.fixture
async def hr(make_user) -> User:
    return await make_user(UserRole.HR, "Hana")


@pytest.fixture
async def client(session_factory, workflow) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client bound to the app. The acting user is whatever ``client.user``
    is set to; it defaults to nobody, which makes protected routes answer 401.
    """
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        ac.user = None

        async def override_get_current_user() -> User:
            if ac.user is None:
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
            return ac.user

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_current_user] = override_get_current_user
        app.dependency_overrides[get_leave_workflow] = lambda: workflow
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_leave(session_factory):
    """Insert a leave row directly, bypassing workflow rules (past dates, any status)."""
    async def _make_leave(
        user: User,
        start_date: date,
        end_date: date,
        leave_type: LeaveType = LeaveType.ANNUAL,
        status: LeaveStatus = LeaveStatus.PENDING,
        is_active: bool = True,
    ) -> LeaveRequest:
        leave = LeaveRequest(
            id=uuid.uuid4(),
            user_id=user.id,
            leave_type=leave_type,
            reason="Prepared by test",
            status=status,
            is_active=is_active,
        )
        leave.set_dates(start_date, end_date)
        async with session_factory() as session:
            session.add(leave)
            await session.commit()
        return leave
    return _make_leave
