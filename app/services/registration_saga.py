from datetime import datetime, timezone
from typing import Optional

from app.core.saga import Saga, SagaStep
from app.logging_config import get_logger
from app.models.api_key import ApiKey
from app.models.enums import UserStatus
from app.models.user import User
from app.repositories.api_key_repository import ApiKeyRepository
from app.repositories.user_repository import UserRepository
from app.schemas.credits import CreatedApiKey
from app.schemas.users import NewUser
from app.services.identity_provider import IdentityProviderClient
from app.services.key_service import KeyService

logger = get_logger(__name__)


class UserRegistrationSagaBuilder:
    """Builds the four-step registration saga for one new user.

    Build a fresh builder per registration; later steps read the key id the
    key-generation step stores on the builder.
    """

    def __init__(self, users: UserRepository, api_keys: ApiKeyRepository, keys: KeyService,
                 identity: IdentityProviderClient):
        self.users = users
        self.api_keys = api_keys
        self.keys = keys
        self.identity = identity
        self.new_user: Optional[NewUser] = None
        self.generated_key: Optional[CreatedApiKey] = None

    def for_user(self, new_user: NewUser) -> "UserRegistrationSagaBuilder":
        self.new_user = new_user
        return self

    async def _register_user(self):
        await self.users.save(User(user_id=self.new_user.user_id, email=self.new_user.email,
                                   status=UserStatus.ACTIVE))

    async def _unregister_user(self):
        await self.users.delete(self.new_user.user_id)

    async def _generate_key(self) -> str:
        self.generated_key = await self.keys.create_key(self.new_user.user_id)
        return self.generated_key.key_id

    async def _revoke_key(self):
        if self.generated_key:
            await self.keys.revoke_key(self.generated_key.key_id)

    async def _save_key(self):
        if not self.generated_key:
            raise RuntimeError("No API key generated to save to database")
        await self.api_keys.save(ApiKey(key_id=self.generated_key.key_id, user_id=self.new_user.user_id,
                                        name=f"API Key for {self.new_user.user_id}"))

    async def _remove_key(self):
        if self.generated_key:
            await self.api_keys.delete(self.generated_key.key_id)

    async def _set_claims(self):
        await self.identity.update_user_claims(self.new_user.user_id, {
            "key_id": self.generated_key.key_id,
            "has_api_key": True,
            "user_status": UserStatus.ACTIVE.value,
            "registration_completed": True,
            "registration_date": datetime.now(timezone.utc).isoformat(),
        })

    async def _reset_claims(self):
        await self.identity.update_user_claims(self.new_user.user_id, {
            "has_api_key": False,
            "user_status": UserStatus.PENDING.value,
            "registration_completed": False,
        })

    def build(self) -> Saga:
        if self.new_user is None:
            raise ValueError("User data must be provided before building the saga")

        return (
            Saga("user_registration")
            .add_step(SagaStep(self._register_user, self._unregister_user, "register_user"))
            .add_step(SagaStep(self._generate_key, self._revoke_key, "generate_api_key"))
            .add_step(SagaStep(self._save_key, self._remove_key, "save_api_key"))
            .add_step(SagaStep(self._set_claims, self._reset_claims, "update_user_claims"))
        )
