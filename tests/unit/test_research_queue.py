import json

import pytest
from unittest.mock import AsyncMock, call
from redis.exceptions import ResponseError

from app.core.queue_adapter import default_message_extractor
from app.services.research_queue import ResearchQueue


@pytest.fixture
def redis():
    return AsyncMock()


@pytest.fixture
def queue(redis):
    return ResearchQueue(redis, "research:jobs", "workers", "c1")


@pytest.mark.asyncio
async def test_publish_writes_direct_or_wrapped_body(queue, redis):
    redis.xadd.return_value = "1-0"

    assert await queue.publish({"id": "r1"}) == "1-0"
    await queue.publish({"id": "r2"}, wrapped=True)

    direct = json.loads(redis.xadd.await_args_list[0].args[1]["body"])
    wrapped = json.loads(redis.xadd.await_args_list[1].args[1]["body"])
    assert direct == {"payload": {"id": "r1"}}
    assert json.loads(wrapped["Message"]) == {"id": "r2"}


@pytest.mark.asyncio
async def test_read_batch_maps_entries_to_records(queue, redis):
    redis.xreadgroup.return_value = [
        ["research:jobs", [("1-0", {"body": json.dumps({"payload": {"id": "r1"}})}), ("2-0", {})]],
    ]

    batch = await queue.read_batch(10, block_ms=500)

    assert len(batch.records) == 1
    rec = batch.records[0]
    assert rec.record_id == rec.receipt_token == "1-0"
    assert rec.source_reference == "research:jobs|workers"
    assert default_message_extractor(rec) == {"id": "r1"}
    redis.xreadgroup.assert_awaited_once_with("workers", "c1", {"research:jobs": ">"}, count=10, block=500)


@pytest.mark.asyncio
async def test_empty_read_is_an_empty_batch(queue, redis):
    redis.xreadgroup.return_value = None
    assert (await queue.read_batch(5)).records == []


@pytest.mark.asyncio
async def test_acknowledge_acks_then_deletes(queue, redis):
    await queue.acknowledge("research:jobs|workers", "1-0")

    redis.xack.assert_awaited_once_with("research:jobs", "workers", "1-0")
    redis.xdel.assert_awaited_once_with("research:jobs", "1-0")


@pytest.mark.asyncio
async def test_acknowledge_rejects_bad_reference(queue):
    with pytest.raises(ValueError):
        await queue.acknowledge("no-separator", "1-0")


@pytest.mark.asyncio
async def test_ensure_group_tolerates_existing_group(queue, redis):
    redis.xgroup_create.side_effect = ResponseError("BUSYGROUP Consumer Group name already exists")
    await queue.ensure_group()

    redis.xgroup_create.side_effect = ResponseError("WRONGTYPE")
    with pytest.raises(ResponseError):
        await queue.ensure_group()


@pytest.mark.asyncio
async def test_reclaim_dead_letters_over_delivered_entries(queue, redis):
    redis.xpending_range.return_value = [
        {"message_id": "1-0", "consumer": "c0", "time_since_delivered": 900000, "times_delivered": 6},
        {"message_id": "2-0", "consumer": "c0", "time_since_delivered": 900000, "times_delivered": 5},
    ]
    redis.xrange.return_value = [("1-0", {"body": "{}"})]
    redis.xautoclaim.return_value = ["0-0", [("2-0", {"body": "{}"})], []]

    batch = await queue.reclaim_stale(min_idle_ms=60000, max_deliveries=5)

    redis.xadd.assert_awaited_once_with("research:jobs:dead", {"body": "{}", "original_id": "1-0"})
    assert redis.xack.await_args_list == [call("research:jobs", "workers", "1-0")]
    assert [r.record_id for r in batch.records] == ["2-0"]
