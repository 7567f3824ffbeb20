from typing import Any, Dict
from app.logging_config import get_logger
from app.services.http_service_client import HTTPServiceClient

logger = get_logger(__name__)

class IdentityProviderClient:
    def __init__(self, client: HTTPServiceClient):
        self.client = client

    async def update_user_claims(self, user_id: str, claims: Dict[str, Any]):
        """Merge `claims` into the user's public metadata at the identity provider."""
        await self.client.acall("identity_provider", "PATCH", f"/v1/users/{user_id}/metadata",
                                {"public_metadata": claims})
        logger.info("user_claims_updated", extra={"claim_keys": sorted(claims)})
