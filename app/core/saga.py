"""Sequential saga with compensating rollback.

Steps run strictly in declaration order. When step k fails, the compensations of
steps k-1..0 run in descending order, each attempted even if a later one failed,
and the original error from step k is re-raised. Saga state lives only in memory
for the duration of one invocation.
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

from app.models.enums import SagaState
from app.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def _no_compensation():
    return None


@dataclass(frozen=True)
class SagaStep(Generic[T]):
    execute: Callable[[], Awaitable[T]]
    compensate: Callable[[], Awaitable[None]] = _no_compensation
    name: str = ""


class Saga:
    def __init__(self, name: str = "saga"):
        self.name = name
        self.steps: List[SagaStep] = []
        self.results: List[Any] = []
        self.completed_count = 0
        self.state = SagaState.NOT_STARTED
        self.compensation_errors: List[BaseException] = []
        self.failed_step: Optional[int] = None

    def add_step(self, step: SagaStep) -> "Saga":
        if self.state != SagaState.NOT_STARTED:
            raise RuntimeError("Cannot add steps to a saga that has already started")
        self.steps.append(step)
        return self

    def _step_name(self, index: int) -> str:
        return self.steps[index].name or f"step_{index}"

    async def execute(self) -> List[Any]:
        if self.state != SagaState.NOT_STARTED:
            raise RuntimeError(f"Saga {self.name} has already been executed")

        self.state = SagaState.RUNNING
        for index, step in enumerate(self.steps):
            logger.info("saga_step_started", extra={"saga": self.name, "step": self._step_name(index)})
            try:
                result = await step.execute()
            except Exception as e:
                self.failed_step = index
                logger.warning("saga_step_failed", extra={
                    "saga": self.name, "step": self._step_name(index), "error_type": type(e).__name__})
                await self._compensate()
                raise
            self.results.append(result)
            self.completed_count += 1

        self.state = SagaState.COMPLETED
        logger.info("saga_completed", extra={"saga": self.name, "steps": len(self.steps)})
        return self.results

    async def _compensate(self):
        self.state = SagaState.COMPENSATING
        for index in range(self.completed_count - 1, -1, -1):
            try:
                await self.steps[index].compensate()
                logger.info("saga_step_compensated", extra={"saga": self.name, "step": self._step_name(index)})
            except Exception as e:
                self.compensation_errors.append(e)
                logger.error("saga_compensation_failed", exc_info=e,
                             extra={"saga": self.name, "step": self._step_name(index)})
        self.state = SagaState.COMPENSATED
