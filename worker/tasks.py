import asyncio
from typing import Any, Dict

import redis
import redis.asyncio as aioredis
from celery import Task
from sqlalchemy.exc import OperationalError
from sqlmodel import create_engine

from app.celery_app import celery_app
from app.config import (
    DATABASE_URL,
    LOG_LEVEL,
    QUEUE_BATCH_SIZE,
    QUEUE_BLOCK_MS,
    QUEUE_MAX_DELIVERIES,
    QUEUE_MIN_IDLE_MS,
    REDIS_URL,
    SERVICE_NAME,
)
from app.core.queue_adapter import QueueAdapter, QueueAdapterOptions
from app.dependencies import build_research_queue, build_research_service
from app.logging_config import configure_logging, get_logger
from app.schemas.envelopes import QueueBatch
from app.schemas.research import RequestResearchInput
from app.services.http_service_client import HTTPServiceClient

configure_logging(LOG_LEVEL, SERVICE_NAME)
logger = get_logger(__name__)

engine = create_engine(DATABASE_URL)


class BaseTaskWithRetry(Task):
    autoretry_for = (redis.exceptions.RedisError, OperationalError)
    retry_kwargs = {"max_retries": 10, "countdown": 3}
    retry_backoff = True


def research_adapter(service, queue) -> QueueAdapter:
    return QueueAdapter(
        RequestResearchInput,
        service.run_research,
        queue,
        "run_research",
        options=QueueAdapterOptions(process_in_parallel=True, continue_on_error=True),
    )


async def process_batch(adapter: QueueAdapter, batch: QueueBatch) -> Dict[str, Any]:
    if not batch.records:
        return {"processed": 0, "failed": 0}
    result = await adapter(batch)
    return {"processed": len(result.acknowledged), "failed": len(result.errors)}


async def _consume() -> Dict[str, Any]:
    client = aioredis.from_url(REDIS_URL, decode_responses=True)
    try:
        queue = build_research_queue(client)
        await queue.ensure_group()
        service = build_research_service(engine, client, HTTPServiceClient())
        batch = await queue.read_batch(QUEUE_BATCH_SIZE, QUEUE_BLOCK_MS)
        return await process_batch(research_adapter(service, queue), batch)
    finally:
        await client.aclose()


async def _reclaim() -> Dict[str, Any]:
    client = aioredis.from_url(REDIS_URL, decode_responses=True)
    try:
        queue = build_research_queue(client)
        await queue.ensure_group()
        service = build_research_service(engine, client, HTTPServiceClient())
        batch = await queue.reclaim_stale(QUEUE_MIN_IDLE_MS, QUEUE_MAX_DELIVERIES)
        if batch.records:
            logger.info("stale_messages_reclaimed", extra={"count": len(batch.records)})
        return await process_batch(research_adapter(service, queue), batch)
    finally:
        await client.aclose()


@celery_app.task(bind=True, base=BaseTaskWithRetry, acks_late=True)
def consume_research_queue(self):
    return asyncio.run(_consume())


@celery_app.task(bind=True, base=BaseTaskWithRetry, acks_late=True)
def reclaim_stale_messages(self):
    return asyncio.run(_reclaim())
