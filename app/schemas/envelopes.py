from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Optional


class HttpEvent(BaseModel):
    method: str = "GET"
    path: str = "/"
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    path_parameters: Dict[str, str] = Field(default_factory=dict)
    query_parameters: Dict[str, str] = Field(default_factory=dict)

    @field_validator("headers")
    @classmethod
    def _lower_header_names(cls, v: Dict[str, str]) -> Dict[str, str]:
        return {k.lower(): val for k, val in v.items()}

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


class HttpResponse(BaseModel):
    status_code: int
    headers: Dict[str, str] = Field(default_factory=dict)
    body: str
    is_base64_encoded: bool = False


class CallerIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    principal_id: str
    credential_id: Optional[str] = None


class QueueRecord(BaseModel):
    record_id: str
    body: str
    source_reference: str
    receipt_token: str


class QueueBatch(BaseModel):
    records: List[QueueRecord] = Field(default_factory=list)


class DirectMessage(BaseModel):
    payload: Any


class WrappedMessage(BaseModel):
    # fan-out envelope: the inner payload is JSON text under "Message"
    Message: str


class QueueRecordOutcome(BaseModel):
    record_id: str
    success: bool
    error: Optional[str] = None
    result: Any = None


class BatchResult(BaseModel):
    outcomes: List[QueueRecordOutcome] = Field(default_factory=list)

    @property
    def errors(self) -> List[Dict[str, str]]:
        return [{"record_id": o.record_id, "error": o.error} for o in self.outcomes if not o.success]

    @property
    def acknowledged(self) -> List[str]:
        return [o.record_id for o in self.outcomes if o.success]
