import time
from typing import List, Optional
from app.models.enums import ResearchStatus
from app.models.research import Research
from app.repositories.base_repository import BaseRepository, RepositoryErrorMessages, RepositoryOptions

class ResearchRepository(BaseRepository[Research]):
    model = Research

    def __init__(self, engine):
        super().__init__(engine, RepositoryOptions(
            primary_key="research_id",
            error_messages=RepositoryErrorMessages(not_found="Research not found"),
        ))

    async def list_for_user(self, user_id: str) -> List[Research]:
        return await self.query("user_id", user_id, order_by="created_at", descending=True)

    async def set_status(self, research_id: str, status: ResearchStatus, error_code: Optional[str] = None):
        await self.update(research_id, {"research_status": status, "error_code": error_code,
                                        "updated_at": time.time()})
