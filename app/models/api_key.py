import time
from typing import Optional
from sqlmodel import SQLModel, Field

class ApiKey(SQLModel, table=True):
    key_id: str = Field(primary_key=True)
    user_id: str = Field(index=True)
    name: Optional[str] = None
    expires: Optional[str] = None

    created_at: float = Field(default_factory=time.time)
