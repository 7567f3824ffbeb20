"""Per-batch queue pipeline with acknowledge-on-success.

A record is acknowledged (deleted from its source) if and only if its use case
resolved. Failed records stay unacknowledged so the at-least-once source
redelivers or dead-letters them.
"""
import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, Protocol, Type, TypeVar

import pydantic
from pydantic import BaseModel

from app.core import error_classifier
from app.core.errors import FatalBatchError, MessageFormatError, ValidationError
from app.logging_config import get_logger, reset_correlation_id, set_correlation_id
from app.schemas.envelopes import (
    BatchResult,
    DirectMessage,
    QueueBatch,
    QueueRecord,
    QueueRecordOutcome,
    WrappedMessage,
)

logger = get_logger(__name__)

TInput = TypeVar("TInput", bound=BaseModel)

MessageExtractor = Callable[[QueueRecord], Any]
UseCase = Callable[[Any], Awaitable[Any]]


class Acknowledger(Protocol):
    async def acknowledge(self, source_reference: str, receipt_token: str) -> None:
        ...


@dataclass
class QueueAdapterOptions:
    process_in_parallel: bool = True
    continue_on_error: bool = True
    verbose_logging: bool = False


def default_message_extractor(record: QueueRecord) -> Any:
    """Decode a record body as either a direct or a once-wrapped message.

    Direct `{"payload": ...}` is tried first, then the fan-out shape
    `{"Message": "<json>"}`; anything else is a format error.
    """
    try:
        body = json.loads(record.body)
    except json.JSONDecodeError as e:
        raise MessageFormatError(f"Record body is not valid JSON: {e.msg}") from e

    try:
        return DirectMessage.model_validate(body).payload
    except pydantic.ValidationError:
        pass

    try:
        wrapped = WrappedMessage.model_validate(body)
    except pydantic.ValidationError:
        raise MessageFormatError("Invalid message format: expected 'payload' or 'Message' field")

    try:
        return json.loads(wrapped.Message)
    except json.JSONDecodeError as e:
        raise MessageFormatError(f"Invalid wrapped message format: {e.msg}") from e


class QueueAdapter(Generic[TInput]):
    def __init__(self, input_schema: Type[TInput], use_case: UseCase, acknowledger: Acknowledger,
                 adapter_name: str, message_extractor: Optional[MessageExtractor] = None,
                 options: Optional[QueueAdapterOptions] = None):
        self.input_schema = input_schema
        self.use_case = use_case
        self.acknowledger = acknowledger
        self.adapter_name = adapter_name
        self.message_extractor = message_extractor or default_message_extractor
        self.options = options or QueueAdapterOptions()

    def _validate(self, raw: Any) -> TInput:
        try:
            return self.input_schema.model_validate(raw)
        except pydantic.ValidationError as e:
            raise ValidationError("Validation failed", errors=error_classifier.pydantic_violations(e)) from e

    async def _process_record(self, record: QueueRecord) -> QueueRecordOutcome:
        token = set_correlation_id(record.record_id)
        try:
            if self.options.verbose_logging:
                logger.info("record_processing", extra={
                    "adapter": self.adapter_name, "record_id": record.record_id, "body_size": len(record.body)})
            failure_event = "record_failed"
            try:
                raw = self.message_extractor(record)
                validated = self._validate(raw)
                result = await self.use_case(validated)
                # use case resolved; only the ack can fail from here
                failure_event = "record_ack_failed"
                await self.acknowledger.acknowledge(record.source_reference, record.receipt_token)
            except Exception as e:
                classified = error_classifier.classify(e)
                logger.error(failure_event, exc_info=e, extra={
                    "adapter": self.adapter_name, "record_id": record.record_id, "error_code": classified.code})
                if not self.options.continue_on_error:
                    raise
                return QueueRecordOutcome(record_id=record.record_id, success=False,
                                          error=str(e) or classified.body["message"])
            if self.options.verbose_logging:
                logger.info("record_acknowledged", extra={"adapter": self.adapter_name, "record_id": record.record_id})
            return QueueRecordOutcome(record_id=record.record_id, success=True, result=result)
        finally:
            reset_correlation_id(token)

    async def _run_parallel(self, batch: QueueBatch):
        tasks = [asyncio.ensure_future(self._process_record(r)) for r in batch.records]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            # only reachable with continue_on_error=False
            for t in tasks:
                if not t.done():
                    t.cancel()
            raise

    async def handle(self, batch: QueueBatch) -> BatchResult:
        logger.info("batch_received", extra={"adapter": self.adapter_name, "record_count": len(batch.records)})
        if not batch.records:
            raise FatalBatchError("Missing queue records")

        if self.options.process_in_parallel:
            outcomes = await self._run_parallel(batch)
        else:
            outcomes = []
            for record in batch.records:
                outcomes.append(await self._process_record(record))

        result = BatchResult(outcomes=list(outcomes))
        logger.info("batch_processed", extra={
            "adapter": self.adapter_name, "acknowledged": len(result.acknowledged), "failed": len(result.errors)})
        return result

    __call__ = handle
