import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from teamdesk.core.exceptions import ConflictError, InfrastructureError, NotFoundError
from teamdesk.services.leave_store import OVERLAP_CONSTRAINT_NAME, transactional


class Operations:
    def __init__(self, error):
        self.error = error
        self.calls = 0

    @transactional("failing_operation")
    async def run(self, db):
        self.calls += 1
        raise self.error


@pytest.mark.asyncio
async def test_overlap_constraint_violation_becomes_conflict(db):
    orig = Exception(f'conflicting key value violates exclusion constraint "{OVERLAP_CONSTRAINT_NAME}"')
    with pytest.raises(ConflictError):
        await Operations(IntegrityError("INSERT", {}, orig)).run(db)


@pytest.mark.asyncio
async def test_other_integrity_errors_are_opaque(db, caplog):
    orig = Exception('duplicate key value violates unique constraint "ix_users_email"')
    with pytest.raises(InfrastructureError) as exc_info:
        await Operations(IntegrityError("INSERT", {}, orig)).run(db)

    assert "ix_users_email" not in exc_info.value.message
    assert "Integrity error during failing_operation" in caplog.text


@pytest.mark.asyncio
async def test_database_errors_become_infrastructure_errors(db, caplog):
    with pytest.raises(InfrastructureError) as exc_info:
        await Operations(OperationalError("SELECT", {}, Exception("connection reset"))).run(db)

    assert "connection reset" not in exc_info.value.message
    assert "Database error during failing_operation" in caplog.text


@pytest.mark.asyncio
async def test_domain_errors_pass_through(db):
    error = NotFoundError("Leave with ID x not found")
    with pytest.raises(NotFoundError) as exc_info:
        await Operations(error).run(db)
    assert exc_info.value is error
