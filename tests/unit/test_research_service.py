import pytest
from unittest.mock import AsyncMock, MagicMock

from app.core.errors import ConflictError, InsufficientCreditsError, NotFoundError, TransientUpstreamError
from app.core.retry import RetryPolicy
from app.models.enums import CreditOperation, ResearchStatus
from app.models.research import Research
from app.repositories.research_repository import ResearchRepository
from app.schemas.research import GetAllUserResearchInput, GetResearchInput, RequestResearchInput, ResearchResult
from app.services.research_service import ResearchService


@pytest.fixture
def credits():
    c = MagicMock()
    c.update_user_credits = AsyncMock(return_value=99)
    return c


@pytest.fixture
def queue():
    q = MagicMock()
    q.publish = AsyncMock(return_value="1-0")
    return q


@pytest.fixture
def agent():
    a = MagicMock()
    a.run = AsyncMock(return_value=ResearchResult(title="T", content="C", citation_links=["https://x"]))
    return a


@pytest.fixture
def repo(engine):
    return ResearchRepository(engine)


@pytest.fixture
def service(repo, credits, queue, agent):
    return ResearchService(repo, credits, queue, agent, RetryPolicy(max_attempts=3, delay_ms=0))


def job(**kw):
    return RequestResearchInput(**{"prompt": "quantum computing", "user_id": "u1", "key_id": "k1", "id": "r1", **kw})


@pytest.mark.asyncio
async def test_request_research_charges_stores_and_enqueues(service, repo, credits, queue):
    pending = await service.request_research(job())

    assert pending.research_id == "r1"
    assert pending.research_status == ResearchStatus.PENDING
    assert pending.title.startswith("Research for: quantum computing")
    command = credits.update_user_credits.await_args.args[0]
    assert command.operation == CreditOperation.DECREMENT
    assert command.amount == 1
    assert (await repo.get_by_id("r1")).user_id == "u1"
    assert queue.publish.await_args.args[0] == {
        "prompt": "quantum computing", "id": "r1", "user_id": "u1", "key_id": "k1"}


@pytest.mark.asyncio
async def test_publish_failure_refunds_and_removes_pending(service, repo, credits, queue):
    queue.publish.side_effect = ConnectionError("redis down")

    with pytest.raises(ConnectionError):
        await service.request_research(job())

    ops = [c.args[0].operation for c in credits.update_user_credits.await_args_list]
    assert ops == [CreditOperation.DECREMENT, CreditOperation.INCREMENT]
    assert await repo.find("r1") is None


@pytest.mark.asyncio
async def test_no_credits_means_nothing_is_stored(service, repo, credits, queue):
    credits.update_user_credits.side_effect = InsufficientCreditsError("Insufficient credits")

    with pytest.raises(InsufficientCreditsError):
        await service.request_research(job())

    assert credits.update_user_credits.await_count == 1
    queue.publish.assert_not_called()
    assert await repo.find("r1") is None


@pytest.mark.asyncio
async def test_run_research_completes_pending_entry(service, repo):
    await repo.save(Research(research_id="r1", user_id="u1", title="pending", created_at=5.0))

    out = await service.run_research(job())

    assert out == {"message": "Research saved successfully", "research_id": "r1"}
    saved = await repo.get_by_id("r1")
    assert saved.research_status == ResearchStatus.COMPLETED
    assert saved.content == "C"
    assert saved.created_at == 5.0


@pytest.mark.asyncio
async def test_run_research_stores_result_without_pending_entry(service, repo):
    await service.run_research(job())
    assert (await repo.get_by_id("r1")).title == "T"


@pytest.mark.asyncio
async def test_run_research_retries_bad_agent_replies(service, agent):
    agent.run.side_effect = [TransientUpstreamError("garbled", "BAD_RESPONSE"),
                             ResearchResult(title="T", content="C")]
    await service.run_research(job())
    assert agent.run.await_count == 2


@pytest.mark.asyncio
async def test_run_research_marks_failure_and_reraises(service, repo, agent):
    await repo.save(Research(research_id="r1", user_id="u1"))
    agent.run.side_effect = TransientUpstreamError("garbled", "BAD_RESPONSE")

    with pytest.raises(TransientUpstreamError):
        await service.run_research(job())

    failed = await repo.get_by_id("r1")
    assert agent.run.await_count == 3
    assert failed.research_status == ResearchStatus.FAILED
    assert failed.error_code == "BAD_RESPONSE"


@pytest.mark.asyncio
async def test_get_research_hides_other_users_items(service, repo):
    await repo.save(Research(research_id="r1", user_id="u2"))

    with pytest.raises(NotFoundError):
        await service.get_research(GetResearchInput(user_id="u1", research_id="r1"))

    out = await service.get_research(GetResearchInput(user_id="u2", research_id="r1"))
    assert out["data"]["research_id"] == "r1"


@pytest.mark.asyncio
async def test_list_research(service, repo):
    await repo.save(Research(research_id="a", user_id="u1", created_at=1.0))
    await repo.save(Research(research_id="b", user_id="u1", created_at=2.0))

    out = await service.list_research(GetAllUserResearchInput(user_id="u1"))

    assert [r["research_id"] for r in out["data"]] == ["b", "a"]


@pytest.mark.asyncio
async def test_existing_research_id_is_refused_and_refunded(service, repo, credits, queue):
    await repo.save(Research(research_id="r1", user_id="u2", title="theirs"))

    with pytest.raises(ConflictError):
        await service.request_research(job())

    ops = [c.args[0].operation for c in credits.update_user_credits.await_args_list]
    assert ops == [CreditOperation.DECREMENT, CreditOperation.INCREMENT]
    queue.publish.assert_not_called()
    kept = await repo.get_by_id("r1")
    assert kept.user_id == "u2"
    assert kept.title == "theirs"
