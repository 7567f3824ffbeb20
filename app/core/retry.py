"""Bounded, fixed-delay retry for a single async operation.

The delay between attempts is constant, not exponential. By default only
TransientUpstreamError (an upstream reply that could not be parsed or validated)
is retried; business and other upstream errors fail on the first attempt.
"""
import asyncio
import functools
import json
from typing import Any, Awaitable, Callable, Optional

import pydantic

from app.core.errors import TransientUpstreamError
from app.logging_config import get_logger

logger = get_logger(__name__)


def is_transient_parse_error(error: BaseException) -> bool:
    return isinstance(error, (TransientUpstreamError, pydantic.ValidationError, json.JSONDecodeError))


class RetryPolicy:
    def __init__(self, max_attempts: int = 3, delay_ms: int = 1000,
                 is_retryable: Optional[Callable[[BaseException], bool]] = None,
                 on_retry: Optional[Callable[[BaseException, int], None]] = None):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self.max_attempts = max_attempts
        self.delay_ms = delay_ms
        self.is_retryable = is_retryable or is_transient_parse_error
        self.on_retry = on_retry

    async def run(self, operation: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        attempt = 1
        while True:
            try:
                return await operation(*args, **kwargs)
            except Exception as e:
                if not self.is_retryable(e) or attempt >= self.max_attempts:
                    if attempt > 1:
                        logger.error("retry_exhausted", extra={
                            "attempt": attempt, "max_attempts": self.max_attempts,
                            "error_type": type(e).__name__})
                    raise
                logger.warning("retrying_operation", extra={
                    "attempt": attempt, "max_attempts": self.max_attempts,
                    "delay_ms": self.delay_ms, "error_type": type(e).__name__})
                if self.on_retry:
                    try:
                        self.on_retry(e, attempt)
                    except Exception:
                        logger.exception("on_retry_callback_failed")
                await asyncio.sleep(self.delay_ms / 1000)
                attempt += 1

    def wrap(self, operation: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(operation)
        async def wrapper(*args, **kwargs):
            return await self.run(operation, *args, **kwargs)
        return wrapper


def with_retry(max_attempts: int = 3, delay_ms: int = 1000,
               is_retryable: Optional[Callable[[BaseException], bool]] = None,
               on_retry: Optional[Callable[[BaseException, int], None]] = None):
    return RetryPolicy(max_attempts, delay_ms, is_retryable, on_retry).wrap
