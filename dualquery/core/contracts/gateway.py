from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    query: str


class QueryResponse(BaseModel):
    conversation_id: str
    status: str  # "completed" | "partial" | "failed"
    query: str
    primary_response: str
    secondary_response: str
    timestamp: int


class CredentialUpdate(BaseModel):
    secret: str = Field(default="")


class CredentialStatus(BaseModel):
    provider_id: str
    stored: bool
    has_credential: bool


class PaneState(BaseModel):
    provider_id: str
    loading: bool
    query: str | None = None
    text: str | None = None
