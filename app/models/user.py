import time
from typing import Optional
from sqlmodel import SQLModel, Field
from app.models.enums import UserStatus

class User(SQLModel, table=True):
    user_id: str = Field(primary_key=True)
    email: Optional[str] = None
    status: UserStatus = Field(default=UserStatus.PENDING)

    created_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)
