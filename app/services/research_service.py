import time
from typing import Any, Dict, List
from app.core.errors import NotFoundError
from app.core.retry import RetryPolicy
from app.core.saga import Saga, SagaStep
from app.logging_config import get_logger
from app.models.enums import CreditOperation, ResearchStatus
from app.models.research import Research
from app.repositories.research_repository import ResearchRepository
from app.schemas.credits import UpdateUserCreditsCommand
from app.schemas.research import (
    GetAllUserResearchInput,
    GetResearchInput,
    PendingResearch,
    RequestResearchInput,
    ResearchOutput,
)
from app.services.key_service import CreditService
from app.services.research_agent import ResearchAgent
from app.services.research_queue import ResearchQueue

logger = get_logger(__name__)

RESEARCH_COST = 1


class ResearchService:
    def __init__(self, repo: ResearchRepository, credits: CreditService, queue: ResearchQueue,
                 agent: ResearchAgent, retry: RetryPolicy):
        self.repo = repo
        self.credits = credits
        self.queue = queue
        self.agent = agent
        self.retry = retry

    def _credit_command(self, input: RequestResearchInput, operation: CreditOperation) -> UpdateUserCreditsCommand:
        return UpdateUserCreditsCommand(user_id=input.user_id, key_id=input.key_id,
                                        operation=operation, amount=RESEARCH_COST)

    async def request_research(self, input: RequestResearchInput) -> PendingResearch:
        """Charge one credit, store a pending entry and enqueue the job.

        Each step is undone if a later one fails, so a caller is never charged
        for research that was not queued.
        """
        pending = Research(
            research_id=input.id,
            user_id=input.user_id,
            title=f"Research for: {input.prompt[:50]}...",
            research_status=ResearchStatus.PENDING,
        )

        async def charge():
            return await self.credits.update_user_credits(self._credit_command(input, CreditOperation.DECREMENT))

        async def refund():
            await self.credits.update_user_credits(self._credit_command(input, CreditOperation.INCREMENT))

        async def store():
            await self.repo.create(pending)

        async def unstore():
            await self.repo.delete(pending.research_id)

        async def enqueue():
            return await self.queue.publish(input.model_dump(mode="json"))

        await (
            Saga("request_research")
            .add_step(SagaStep(charge, refund, "decrement_credits"))
            .add_step(SagaStep(store, unstore, "save_pending_research"))
            .add_step(SagaStep(enqueue, name="publish_research_job"))
            .execute()
        )
        return PendingResearch.model_validate(pending)

    async def run_research(self, input: RequestResearchInput) -> Dict[str, Any]:
        logger.info("research_started", extra={"research_id": input.id})
        try:
            result = await self.retry.run(self.agent.run, input)
        except Exception as e:
            try:
                await self.repo.set_status(input.id, ResearchStatus.FAILED, getattr(e, "code", type(e).__name__))
            except Exception:
                logger.exception("research_status_update_failed", extra={"research_id": input.id})
            raise

        completed = {
            "title": result.title,
            "content": result.content,
            "citation_links": result.citation_links,
            "research_status": ResearchStatus.COMPLETED,
            "error_code": None,
            "updated_at": time.time(),
        }
        try:
            await self.repo.update(input.id, completed)
        except NotFoundError:
            # pending entry gone (e.g. redelivered after cleanup); store the result anyway
            await self.repo.save(Research(research_id=input.id, user_id=input.user_id, **completed))
        logger.info("research_completed", extra={"research_id": input.id})
        return {"message": "Research saved successfully", "research_id": input.id}

    async def get_research(self, input: GetResearchInput) -> Dict[str, Any]:
        research = await self.repo.find(input.research_id)
        # another user's research is reported as missing
        if research is None or research.user_id != input.user_id:
            raise NotFoundError("Research not found")
        return {"message": "Research retrieved successfully",
                "data": ResearchOutput.model_validate(research).model_dump(mode="json")}

    async def list_research(self, input: GetAllUserResearchInput) -> Dict[str, Any]:
        items: List[Research] = await self.repo.list_for_user(input.user_id)
        return {"message": "User research retrieved successfully",
                "data": [ResearchOutput.model_validate(r).model_dump(mode="json") for r in items]}
