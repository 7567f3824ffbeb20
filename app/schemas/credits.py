from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional
from app.models.enums import CreditOperation

class UpdateUserCreditsCommand(BaseModel):
    user_id: str
    key_id: Optional[str] = None
    operation: CreditOperation
    amount: int = Field(gt=0)

class GetUserCreditsInput(BaseModel):
    user_id: str
    key_id: Optional[str] = None

class UserCredits(BaseModel):
    credits: int

class CreateApiKeyInput(BaseModel):
    user_id: str
    name: Optional[str] = None
    expires: Optional[str] = None

class CreatedApiKey(BaseModel):
    key_id: str
    key: str

class BillingWebhookEvent(BaseModel):
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)

class CheckoutSessionMetadata(BaseModel):
    """Metadata attached to a checkout session when it was created."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    key_id: str = Field(alias="keyId", min_length=1)
    amount: Optional[int] = Field(default=None, gt=0)
