import json
from typing import Any, Dict, List, Tuple

import redis.asyncio as aioredis
from redis.exceptions import ResponseError

from app.logging_config import get_logger
from app.schemas.envelopes import QueueBatch, QueueRecord

logger = get_logger(__name__)

SOURCE_SEPARATOR = "|"


class ResearchQueue:
    """At-least-once job queue on a Redis Stream consumer group.

    An entry stays in the group's pending list until acknowledged; acknowledging
    removes it from the stream entirely (XACK + XDEL). Entries idle for too long
    are reclaimed for redelivery, and over-delivered ones go to `<stream>:dead`.
    """

    def __init__(self, redis: aioredis.Redis, stream: str, group: str, consumer: str):
        self.redis = redis
        self.stream = stream
        self.group = group
        self.consumer = consumer

    @property
    def source_reference(self) -> str:
        return f"{self.stream}{SOURCE_SEPARATOR}{self.group}"

    @property
    def dead_letter_stream(self) -> str:
        return f"{self.stream}:dead"

    async def ensure_group(self):
        try:
            await self.redis.xgroup_create(self.stream, self.group, id="0", mkstream=True)
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise

    async def publish(self, payload: Dict[str, Any], wrapped: bool = False) -> str:
        body = {"Message": json.dumps(payload)} if wrapped else {"payload": payload}
        msg_id = await self.redis.xadd(self.stream, {"body": json.dumps(body)})
        logger.info("queue_message_published", extra={"stream": self.stream, "message_id": msg_id})
        return msg_id

    def _to_records(self, entries: List[Tuple[str, Dict[str, str]]]) -> List[QueueRecord]:
        records = []
        for msg_id, fields in entries:
            if not fields:
                # deleted while pending
                continue
            records.append(QueueRecord(
                record_id=msg_id,
                body=fields.get("body", ""),
                source_reference=self.source_reference,
                receipt_token=msg_id,
            ))
        return records

    async def read_batch(self, count: int, block_ms: int = 0) -> QueueBatch:
        resp = await self.redis.xreadgroup(self.group, self.consumer, {self.stream: ">"},
                                           count=count, block=block_ms or None)
        records: List[QueueRecord] = []
        for _stream, entries in resp or []:
            records.extend(self._to_records(entries))
        return QueueBatch(records=records)

    async def acknowledge(self, source_reference: str, receipt_token: str):
        stream, _, group = source_reference.rpartition(SOURCE_SEPARATOR)
        if not stream or not group:
            raise ValueError(f"Invalid source reference: {source_reference}")
        await self.redis.xack(stream, group, receipt_token)
        await self.redis.xdel(stream, receipt_token)

    async def _dead_letter(self, msg_id: str):
        entries = await self.redis.xrange(self.stream, min=msg_id, max=msg_id)
        for _id, fields in entries:
            await self.redis.xadd(self.dead_letter_stream, {**fields, "original_id": _id})
        await self.acknowledge(self.source_reference, msg_id)
        logger.warning("queue_message_dead_lettered", extra={"stream": self.stream, "message_id": msg_id})

    async def reclaim_stale(self, min_idle_ms: int, max_deliveries: int, count: int = 100) -> QueueBatch:
        pending = await self.redis.xpending_range(self.stream, self.group, min="-", max="+",
                                                  count=count, idle=min_idle_ms)
        for entry in pending:
            if entry["times_delivered"] > max_deliveries:
                await self._dead_letter(entry["message_id"])

        claimed = await self.redis.xautoclaim(self.stream, self.group, self.consumer, min_idle_ms,
                                              start_id="0-0", count=count)
        return QueueBatch(records=self._to_records(claimed[1]))
