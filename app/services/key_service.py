from typing import Optional
from app.config import DEFAULT_KEY_CREDITS, KEY_SERVICE_API_ID
from app.core.errors import InsufficientCreditsError, NotFoundError, TransientUpstreamError, UpstreamServiceError
from app.logging_config import get_logger
from app.models.enums import CreditOperation
from app.repositories.api_key_repository import ApiKeyRepository
from app.schemas.credits import CreatedApiKey, UpdateUserCreditsCommand
from app.services.http_service_client import HTTPServiceClient

logger = get_logger(__name__)

SERVICE = "key_service"


def _remaining(out: dict) -> int:
    value = out.get("remaining")
    if not isinstance(value, int):
        raise TransientUpstreamError("key service reply is missing 'remaining'", "BAD_RESPONSE")
    return value


class KeyService:
    """Key-management collaborator: issues API keys and tracks their remaining credits."""

    def __init__(self, client: HTTPServiceClient, api_id: str = KEY_SERVICE_API_ID):
        self.client = client
        self.api_id = api_id

    async def create_key(self, user_id: str, name: Optional[str] = None,
                         remaining: int = DEFAULT_KEY_CREDITS) -> CreatedApiKey:
        out = await self.client.acall(SERVICE, "POST", "/v1/keys", {
            "api_id": self.api_id,
            "owner_id": user_id,
            "name": name or f"API Key for {user_id}",
            "remaining": remaining,
            "meta": {"user_id": user_id},
        })
        if not out.get("key_id") or not out.get("key"):
            raise TransientUpstreamError("key service reply is missing key data", "BAD_RESPONSE")
        logger.info("api_key_created", extra={"key_id": out["key_id"]})
        return CreatedApiKey(key_id=out["key_id"], key=out["key"])

    async def revoke_key(self, key_id: str):
        await self.client.acall(SERVICE, "DELETE", f"/v1/keys/{key_id}")
        logger.info("api_key_revoked", extra={"key_id": key_id})

    async def update_remaining(self, key_id: str, operation: CreditOperation, amount: int) -> int:
        try:
            out = await self.client.acall(SERVICE, "POST", f"/v1/keys/{key_id}/remaining",
                                          {"op": operation.value, "value": amount})
        except UpstreamServiceError as e:
            if e.code == "INSUFFICIENT_CREDITS":
                raise InsufficientCreditsError("Insufficient credits") from e
            raise
        remaining = _remaining(out)
        if operation == CreditOperation.DECREMENT and remaining < 0:
            # charge went through upstream without cover; give it back
            await self.client.acall(SERVICE, "POST", f"/v1/keys/{key_id}/remaining",
                                    {"op": CreditOperation.INCREMENT.value, "value": amount})
            raise InsufficientCreditsError("Insufficient credits")
        return remaining

    async def get_remaining(self, key_id: str) -> int:
        return _remaining(await self.client.acall(SERVICE, "GET", f"/v1/keys/{key_id}"))


class CreditService:
    def __init__(self, keys: KeyService, api_keys: ApiKeyRepository):
        self.keys = keys
        self.api_keys = api_keys

    async def resolve_key_id(self, user_id: str, key_id: Optional[str] = None) -> str:
        if key_id:
            return key_id
        record = await self.api_keys.find_by_user(user_id)
        if record is None:
            raise NotFoundError("No API key found for user")
        return record.key_id

    async def update_user_credits(self, command: UpdateUserCreditsCommand) -> int:
        key_id = await self.resolve_key_id(command.user_id, command.key_id)
        remaining = await self.keys.update_remaining(key_id, command.operation, command.amount)
        logger.info("credits_updated", extra={
            "operation": command.operation.value, "amount": command.amount, "remaining": remaining})
        return remaining

    async def get_user_credits(self, user_id: str, key_id: Optional[str] = None) -> int:
        return await self.keys.get_remaining(await self.resolve_key_id(user_id, key_id))
