"""Tests for the SQLite repository handle."""
import pytest

from gym_desk_api.app.core.config import Settings
from gym_desk_api.app.core.db import SQLiteRepository, get_database_path, init_db
from gym_desk_api.app.services.member_service import MemberService
from tests.factories import member_payload


@pytest.fixture
def memory_repository():
    repo = SQLiteRepository(get_database_path(":memory:"))
    init_db(repo)
    yield repo
    repo.close()


@pytest.mark.asyncio
async def test_in_memory_database_keeps_schema_and_rows(memory_repository):
    members = MemberService(memory_repository, Settings(database_url=":memory:"))
    created = await members.create(member_payload(name="Asha"))

    assert (await members.get(created["id"]))["name"] == "Asha"
    assert memory_repository.count("members") == 1
    assert memory_repository.count("activities") == 1


def test_in_memory_rollback_leaves_shared_connection_usable(memory_repository):
    with pytest.raises(RuntimeError):
        with memory_repository.transaction() as tx:
            tx.clear("activities")
            raise RuntimeError("abort")
    assert memory_repository.count("members") == 0
    assert memory_repository.get_connection() is memory_repository.get_connection()


def test_file_database_uses_fresh_connections(repository):
    first, second = repository.get_connection(), repository.get_connection()
    try:
        assert first is not second
    finally:
        first.close()
        second.close()
