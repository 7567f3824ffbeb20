import pytest

from app.core.errors import ConflictError, NotFoundError
from app.models.api_key import ApiKey
from app.models.enums import ResearchStatus
from app.models.research import Research
from app.repositories.api_key_repository import ApiKeyRepository
from app.repositories.base_repository import BATCH_GET_SIZE
from app.repositories.research_repository import ResearchRepository


@pytest.fixture
def repo(engine):
    return ResearchRepository(engine)


def research(rid, user="u1", created_at=1.0):
    return Research(research_id=rid, user_id=user, title=f"t-{rid}", created_at=created_at)


@pytest.mark.asyncio
async def test_save_and_get_by_id(repo):
    await repo.save(research("r1"))
    found = await repo.get_by_id("r1")
    assert found.title == "t-r1"
    assert found.research_status == ResearchStatus.PENDING


@pytest.mark.asyncio
async def test_get_by_id_raises_configured_message(repo):
    with pytest.raises(NotFoundError, match="Research not found"):
        await repo.get_by_id("missing")
    assert await repo.find("missing") is None


@pytest.mark.asyncio
async def test_update_changes_attributes_but_never_keys(repo):
    await repo.save(research("r1"))

    await repo.update("r1", {"research_id": "hijacked", "title": "new", "citation_links": ["https://a"]})

    updated = await repo.get_by_id("r1")
    assert updated.title == "new"
    assert updated.citation_links == ["https://a"]
    assert await repo.find("hijacked") is None


@pytest.mark.asyncio
async def test_update_of_missing_row_raises(repo):
    with pytest.raises(NotFoundError):
        await repo.update("missing", {"title": "x"})


@pytest.mark.asyncio
async def test_empty_update_is_a_no_op(repo):
    await repo.update("missing", {"research_id": "ignored"})


@pytest.mark.asyncio
async def test_delete_is_idempotent(repo):
    await repo.save(research("r1"))
    await repo.delete("r1")
    await repo.delete("r1")
    assert await repo.find("r1") is None


@pytest.mark.asyncio
async def test_list_for_user_is_newest_first(repo):
    await repo.save(research("old", created_at=1.0))
    await repo.save(research("new", created_at=2.0))
    await repo.save(research("other", user="u2"))

    items = await repo.list_for_user("u1")

    assert [r.research_id for r in items] == ["new", "old"]


@pytest.mark.asyncio
async def test_scan_filters_and_limits(repo):
    for i in range(3):
        await repo.save(research(f"r{i}", user="u1" if i else "u2"))
    assert len(await repo.scan({"user_id": "u1"})) == 2
    assert len(await repo.scan(limit=1)) == 1


@pytest.mark.asyncio
async def test_batch_get_spans_chunks(repo):
    ids = [f"r{i}" for i in range(BATCH_GET_SIZE + 5)]
    for rid in ids:
        await repo.save(research(rid))

    found = await repo.batch_get(ids + ["missing"])

    assert len(found) == len(ids)
    assert await repo.batch_get([]) == []


@pytest.mark.asyncio
async def test_set_status_records_error_code(repo):
    await repo.save(research("r1"))
    await repo.set_status("r1", ResearchStatus.FAILED, "BAD_RESPONSE")
    failed = await repo.get_by_id("r1")
    assert failed.research_status == ResearchStatus.FAILED
    assert failed.error_code == "BAD_RESPONSE"


@pytest.mark.asyncio
async def test_api_key_lookup_returns_latest_key(engine):
    keys = ApiKeyRepository(engine)
    await keys.save(ApiKey(key_id="k1", user_id="u1", created_at=1.0))
    await keys.save(ApiKey(key_id="k2", user_id="u1", created_at=2.0))

    assert (await keys.find_by_user("u1")).key_id == "k2"
    assert await keys.find_by_user("nobody") is None


@pytest.mark.asyncio
async def test_create_refuses_existing_key(repo):
    await repo.create(research("r1"))

    with pytest.raises(ConflictError):
        await repo.create(research("r1", user="u2"))

    assert (await repo.get_by_id("r1")).user_id == "u1"
