import uuid
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from app.models.enums import ResearchStatus

class RequestResearchInput(BaseModel):
    prompt: str = Field(min_length=1)
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    key_id: Optional[str] = None

class GetResearchInput(BaseModel):
    user_id: str
    research_id: str

class GetAllUserResearchInput(BaseModel):
    user_id: str

class ResearchOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    research_id: str
    title: str
    content: str
    citation_links: List[str] = Field(default_factory=list)
    research_status: ResearchStatus = ResearchStatus.PENDING

class PendingResearch(ResearchOutput):
    user_id: str

class ResearchResult(BaseModel):
    """Reply contract of the research agent service."""
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    citation_links: List[str] = Field(default_factory=list)
