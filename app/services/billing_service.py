from typing import Any, Dict

import pydantic

from app.config import TOPUP_DEFAULT_CREDITS
from app.core.error_classifier import pydantic_violations
from app.core.errors import ValidationError
from app.core.saga import Saga, SagaStep
from app.logging_config import get_logger
from app.models.api_key import ApiKey
from app.models.enums import CreditOperation
from app.repositories.api_key_repository import ApiKeyRepository
from app.schemas.credits import (
    BillingWebhookEvent,
    CheckoutSessionMetadata,
    CreateApiKeyInput,
    CreatedApiKey,
    GetUserCreditsInput,
    UpdateUserCreditsCommand,
    UserCredits,
)
from app.services.key_service import CreditService, KeyService

logger = get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"

class BillingService:
    def __init__(self, keys: KeyService, api_keys: ApiKeyRepository, credits: CreditService,
                 topup_default: int = TOPUP_DEFAULT_CREDITS):
        self.keys = keys
        self.api_keys = api_keys
        self.credits = credits
        self.topup_default = topup_default

    async def get_user_credits(self, input: GetUserCreditsInput) -> UserCredits:
        return UserCredits(credits=await self.credits.get_user_credits(input.user_id, input.key_id))

    async def create_api_key(self, input: CreateApiKeyInput) -> CreatedApiKey:
        created = {}

        async def issue():
            created["key"] = await self.keys.create_key(input.user_id, input.name)
            return created["key"]

        async def revoke():
            await self.keys.revoke_key(created["key"].key_id)

        async def record():
            await self.api_keys.save(ApiKey(key_id=created["key"].key_id, user_id=input.user_id,
                                            name=input.name, expires=input.expires))

        async def unrecord():
            await self.api_keys.delete(created["key"].key_id)

        await (
            Saga("create_api_key")
            .add_step(SagaStep(issue, revoke, "issue_key"))
            .add_step(SagaStep(record, unrecord, "save_key_record"))
            .execute()
        )
        return created["key"]

    async def process_payment_webhook(self, event: BillingWebhookEvent) -> Dict[str, Any]:
        logger.info("payment_webhook_received", extra={"event_type": event.type})
        if event.type != CHECKOUT_COMPLETED:
            return {"status": "ignored", "event": event.type}

        checkout = event.data.get("object")
        raw_metadata = checkout.get("metadata") if isinstance(checkout, dict) else None
        try:
            metadata = CheckoutSessionMetadata.model_validate(raw_metadata or {})
        except pydantic.ValidationError as e:
            raise ValidationError("Missing userId or keyId in session metadata",
                                  errors=pydantic_violations(e)) from e

        amount = metadata.amount or self.topup_default
        new_total = await self.credits.update_user_credits(UpdateUserCreditsCommand(
            user_id=metadata.user_id, key_id=metadata.key_id,
            operation=CreditOperation.INCREMENT, amount=amount))
        return {"status": "success", "user_id": metadata.user_id, "credits": amount, "new_total": new_total}
