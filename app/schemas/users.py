from pydantic import BaseModel, Field
from typing import Any, Dict, Optional

class NewUser(BaseModel):
    user_id: str = Field(min_length=1)
    email: Optional[str] = None

class WebhookUserData(BaseModel):
    id: str = Field(min_length=1)

class AuthWebhookEvent(BaseModel):
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
