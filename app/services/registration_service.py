from typing import Any, Callable, Dict
from app.logging_config import get_logger
from app.models.enums import WebhookEventType
from app.schemas.users import AuthWebhookEvent, NewUser, WebhookUserData
from app.services.registration_saga import UserRegistrationSagaBuilder

logger = get_logger(__name__)

class RegistrationService:
    def __init__(self, saga_builder_factory: Callable[[], UserRegistrationSagaBuilder]):
        self.saga_builder_factory = saga_builder_factory

    async def register_user(self, new_user: NewUser) -> Dict[str, str]:
        logger.info("registering_user")
        saga = self.saga_builder_factory().for_user(new_user).build()
        await saga.execute()
        return {"message": "User registered successfully"}

    async def process_webhook(self, event: AuthWebhookEvent) -> Dict[str, Any]:
        logger.info("auth_webhook_received", extra={"event_type": event.type})
        if event.type == WebhookEventType.USER_CREATED.value:
            data = WebhookUserData.model_validate(event.data)
            email = None
            addresses = event.data.get("email_addresses") or []
            if addresses and isinstance(addresses[0], dict):
                email = addresses[0].get("email_address")
            result = await self.register_user(NewUser(user_id=data.id, email=email))
            return {"status": "success", "user_id": data.id, "action": "user_created",
                    "message": result["message"]}
        if event.type == WebhookEventType.USER_UPDATED.value:
            data = WebhookUserData.model_validate(event.data)
            return {"status": "success", "user_id": data.id, "action": "user_updated"}
        logger.info("auth_webhook_ignored", extra={"event_type": event.type})
        return {"status": "ignored", "event": event.type}
