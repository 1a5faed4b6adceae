from dualquery.core.contracts.gateway import QueryRequest, QueryResponse, CredentialUpdate, CredentialStatus, PaneState
from dualquery.core.contracts.conversation import ConversationRecord, ValidationOutcome
from dualquery.core.contracts.provider import ProviderResult

__all__ = [
    "QueryRequest",
    "QueryResponse",
    "CredentialUpdate",
    "CredentialStatus",
    "PaneState",
    "ConversationRecord",
    "ValidationOutcome",
    "ProviderResult",
]
