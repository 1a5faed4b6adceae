"""Gateway FastAPI app: POST /query -> both providers -> one ConversationRecord; history and credentials."""
from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(message)s", datefmt="%H:%M:%S")
log = logging.getLogger("gateway")

from dualquery.core.config.loader import load_app_config, resolve_config_path
from dualquery.core.contracts.conversation import ConversationRecord
from dualquery.core.contracts.gateway import CredentialStatus, CredentialUpdate, PaneState, QueryRequest, QueryResponse
from dualquery.core.exceptions import ValidationError
from dualquery.gateway.deps import Runtime, build_runtime

app = FastAPI(title="Dual Query: Gateway")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
RUNTIME: Runtime | None = None


def get_runtime() -> Runtime:
    global RUNTIME
    if RUNTIME is None:
        config = load_app_config(resolve_config_path(), project_root=PROJECT_ROOT)
        RUNTIME = build_runtime(config, project_root=PROJECT_ROOT)
    return RUNTIME


@app.on_event("startup")
def startup():
    get_runtime().start()


@app.on_event("shutdown")
def shutdown():
    global RUNTIME
    if RUNTIME is None:
        return
    if not RUNTIME.close():
        log.warning("shutdown interrupted in-flight provider calls")
    RUNTIME = None


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/query", response_model=QueryResponse)
def query(req: QueryRequest):
    runtime = get_runtime()
    try:
        pending = runtime.coordinator.dispatch(req.query)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    record = pending.result()
    return QueryResponse(
        conversation_id=record.id,
        status=pending.status,
        query=record.query,
        primary_response=record.primary_response,
        secondary_response=record.secondary_response,
        timestamp=record.timestamp,
    )


@app.get("/conversations", response_model=list[ConversationRecord])
def list_conversations(limit: int = Query(20, ge=1, le=200)):
    return get_runtime().store.list_recent(limit)


@app.get("/conversations/{conversation_id}", response_model=ConversationRecord)
def get_conversation(conversation_id: str):
    record = get_runtime().store.get_by_id(conversation_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return record


@app.put("/credentials/{provider_id}", response_model=CredentialStatus)
def set_credential(provider_id: str, body: CredentialUpdate):
    runtime = get_runtime()
    client = runtime.client(provider_id)
    if client is None:
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider_id}")
    stored = runtime.credential_store.set_credential(provider_id, body.secret)
    client.set_credential(body.secret)
    log.info("credential updated for %s (stored=%s)", provider_id, stored)
    return CredentialStatus(provider_id=provider_id, stored=stored, has_credential=client.has_credential())


@app.get("/panes", response_model=list[PaneState])
def panes():
    return [pane.state() for pane in get_runtime().panes]


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
