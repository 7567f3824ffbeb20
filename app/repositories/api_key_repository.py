from typing import Optional
from app.models.api_key import ApiKey
from app.repositories.base_repository import BaseRepository, RepositoryErrorMessages, RepositoryOptions

class ApiKeyRepository(BaseRepository[ApiKey]):
    model = ApiKey

    def __init__(self, engine):
        super().__init__(engine, RepositoryOptions(
            primary_key="key_id",
            error_messages=RepositoryErrorMessages(not_found="API key not found"),
        ))

    async def find_by_user(self, user_id: str) -> Optional[ApiKey]:
        """Most recently created key of the user, if any."""
        keys = await self.query("user_id", user_id, order_by="created_at", descending=True, limit=1)
        return keys[0] if keys else None
