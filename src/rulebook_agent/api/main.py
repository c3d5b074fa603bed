"""FastAPI entrypoint for query/document/sync endpoints."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from rulebook_agent.agent.executor import FallbackQueryExecutor
from rulebook_agent.config import ModelTierConfig, RefreshConfig, UploadConfig
from rulebook_agent.ingest.manifest import KnowledgeBase
from rulebook_agent.ingest.refresher import ContextRefresher
from rulebook_agent.ingest.registry import DocumentRegistry
from rulebook_agent.ingest.uploader import DocumentUploader
from rulebook_agent.obs.tracing import AttemptLog, attempt_as_dict
from rulebook_agent.remote import GenAIRemote

logger = logging.getLogger(__name__)

GREETING = "Hello! How can I help you today?"
NOT_CONFIGURED = "I'm not fully configured yet. No knowledge base files found."
QUERY_FAILED = "I'm sorry, I ran into an issue processing your request."

_MENTION_PATTERN = re.compile(r"<@[a-zA-Z0-9]+>")


def _create_remote(model_config: ModelTierConfig) -> GenAIRemote | None:
    api_key = os.getenv("GEMINI_API_KEY")
    if not api_key:
        return None
    return GenAIRemote.from_api_key(api_key, api_version=model_config.api_version)


class QueryRequest(BaseModel):
    question: str
    model: str | None = None


class SyncRequest(BaseModel):
    documents_dir: str | None = None


def strip_mentions(text: str) -> str:
    return _MENTION_PATTERN.sub("", text).strip()


def create_app(
    *,
    remote: Any | None = None,
    documents_dir: str | None = None,
    manifest_path: str | None = None,
    model_config: ModelTierConfig | None = None,
    upload_config: UploadConfig | None = None,
) -> FastAPI:
    """Wire the store, executor and manifest; the app owns their lifecycle."""

    model_config = model_config or ModelTierConfig(primary=os.getenv("GEMINI_MODEL") or None)
    upload_config = upload_config or UploadConfig()
    refresh_config = RefreshConfig(
        documents_dir=documents_dir or os.getenv("RULEBOOK_DOCUMENTS_DIR", "documents")
    )
    manifest = Path(manifest_path or os.getenv("RULEBOOK_MANIFEST", "knowledgeBase.json"))

    remote = remote if remote is not None else _create_remote(model_config)
    knowledge_base = KnowledgeBase.load(manifest)
    attempt_log = AttemptLog()

    registry: DocumentRegistry | None = None
    refresher: ContextRefresher | None = None
    executor: FallbackQueryExecutor | None = None
    if remote is not None:
        registry = DocumentRegistry(remote)
        refresher = ContextRefresher(DocumentUploader(remote, upload_config), refresh_config)
        executor = FallbackQueryExecutor(
            remote,
            refresher=refresher,
            documents_dir=refresh_config.documents_dir,
            config=model_config,
            upload_config=upload_config,
            on_context_refreshed=knowledge_base.replace,
            observer=attempt_log.record,
        )
    else:
        logger.error("GEMINI_API_KEY is not set; queries will not be answered.")

    app = FastAPI(title="Rulebook Agent", version="0.1.0")

    def _require_remote() -> tuple[DocumentRegistry, ContextRefresher]:
        if registry is None or refresher is None:
            raise HTTPException(status_code=503, detail="Remote file store is not configured")
        return registry, refresher

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "remote_configured": remote is not None,
            "default_model": model_config.default_model,
            "knowledge_base_files": len(knowledge_base.uris),
        }

    @app.post("/query")
    def query(request: QueryRequest) -> dict[str, Any]:
        question = strip_mentions(request.question)
        if not question:
            return {"ok": True, "answer": GREETING}

        uris = knowledge_base.uris
        if executor is None or not uris:
            return {"ok": False, "answer": NOT_CONFIGURED}

        try:
            answer = executor.query(question, uris, request.model)
        except Exception:
            logger.exception("Error processing question")
            return {"ok": False, "answer": QUERY_FAILED}
        return {"ok": True, "answer": answer}

    @app.get("/documents")
    def list_documents() -> dict[str, Any]:
        docs, _ = _require_remote()
        return {
            "items": [
                {
                    "display_name": doc.display_name,
                    "name": doc.remote_handle,
                    "uri": doc.uri,
                    "state": doc.state.value,
                    "create_time": doc.create_time,
                }
                for doc in docs.list()
            ]
        }

    @app.delete("/documents/{name:path}")
    def delete_document(name: str) -> dict[str, Any]:
        docs, _ = _require_remote()
        try:
            docs.delete(name)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"deleted": name}

    @app.post("/sync")
    def sync(request: SyncRequest) -> dict[str, Any]:
        docs, sync_refresher = _require_remote()
        uris = sync_refresher.sync(docs, knowledge_base, request.documents_dir)
        return {"files": len(uris), "uris": uris}

    @app.get("/attempts")
    def attempts(limit: int = 20) -> dict[str, Any]:
        return {"items": [attempt_as_dict(a) for a in attempt_log.list_recent(limit=limit)]}

    @app.get("/metrics")
    def metrics() -> dict[str, Any]:
        return attempt_log.summary()

    return app
