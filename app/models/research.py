import time
from typing import List, Optional
from sqlmodel import SQLModel, Field, JSON
from app.models.enums import ResearchStatus

class Research(SQLModel, table=True):
    research_id: str = Field(primary_key=True)
    user_id: str = Field(index=True)
    title: str = ""
    content: str = ""
    citation_links: List[str] = Field(default_factory=list, sa_type=JSON)
    research_status: ResearchStatus = Field(default=ResearchStatus.PENDING)

    error_code: Optional[str] = None

    created_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)
