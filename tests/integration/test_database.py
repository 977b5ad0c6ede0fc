"""Transactional session dependency: commit, rollback and after-commit callbacks."""

import pytest

import fleet_rbac.infrastructure.persistence.database as database
from fleet_rbac.infrastructure.persistence.repositories import UserRepository
from tests.conftest import TENANT_ID


@pytest.fixture
def transactional_db(monkeypatch, session_factory):
    monkeypatch.setattr(database, "AsyncSessionLocal", session_factory)
    return database.get_db_transactional


async def test_callbacks_run_after_commit(transactional_db, session_factory) -> None:
    seen = []
    gen = transactional_db()
    session = await gen.__anext__()
    user = await UserRepository(session).add_user(tenant_id=TENANT_ID, full_name="Committed")

    async def check_committed() -> None:
        async with session_factory() as other:
            seen.append(await UserRepository(other).get_user(user.id))

    database.on_commit(session, check_committed)
    assert seen == []
    with pytest.raises(StopAsyncIteration):
        await gen.__anext__()
    assert len(seen) == 1
    assert seen[0] is not None
    assert "after_commit" not in session.info


async def test_callbacks_skipped_on_rollback(transactional_db) -> None:
    seen = []
    gen = transactional_db()
    session = await gen.__anext__()

    async def record() -> None:
        seen.append(True)

    database.on_commit(session, record)
    with pytest.raises(RuntimeError):
        await gen.athrow(RuntimeError("handler failed"))
    assert seen == []
