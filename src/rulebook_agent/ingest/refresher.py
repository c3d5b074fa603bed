"""Re-establish the context set by re-uploading the local documents."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from rulebook_agent.config import RefreshConfig
from rulebook_agent.errors import QueryCancelled
from rulebook_agent.ingest.manifest import KnowledgeBase
from rulebook_agent.ingest.registry import DocumentRegistry
from rulebook_agent.ingest.uploader import DocumentUploader

logger = logging.getLogger(__name__)


class ContextRefresher:
    """Uploads every supported file in a directory and collects the new URIs.

    Refresh is partial-success: a file that fails to upload is logged and
    skipped, and whatever succeeded is returned, possibly nothing. Stale
    remote entries are left alone; `sync` is the operation that clears them.
    """

    def __init__(
        self,
        uploader: DocumentUploader,
        config: RefreshConfig | None = None,
    ) -> None:
        self.uploader = uploader
        self.config = config or RefreshConfig()

    def scan(self, documents_dir: str | Path | None = None) -> list[Path]:
        directory = Path(documents_dir or self.config.documents_dir)
        if not directory.is_dir():
            logger.error("Documents directory not found at %s", directory)
            return []
        extension = self.config.extension.lower()
        return sorted(
            (entry for entry in directory.iterdir() if entry.is_file() and entry.name.lower().endswith(extension)),
            key=lambda entry: entry.name,
        )

    def refresh(
        self,
        documents_dir: str | Path | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> list[str]:
        files = self.scan(documents_dir)
        logger.info("Found %d files to upload: %s", len(files), [f.name for f in files])

        uris: list[str] = []
        for path in files:
            if cancel is not None and cancel.is_set():
                raise QueryCancelled(f"Refresh cancelled before uploading {path.name}")
            try:
                document = self.uploader.upload(path, display_name=path.name, cancel=cancel)
            except QueryCancelled:
                raise
            except Exception as exc:  # one bad file must not abort the batch
                logger.error("Failed to upload %s: %s", path.name, exc)
                continue
            if document.uri:
                uris.append(document.uri)

        logger.info("Refresh complete: %d of %d files active", len(uris), len(files))
        return uris

    def sync(
        self,
        registry: DocumentRegistry,
        knowledge_base: KnowledgeBase,
        documents_dir: str | Path | None = None,
    ) -> list[str]:
        """Delete every remote file, re-upload the directory, and persist the manifest."""

        existing = registry.list()
        if existing:
            logger.info("Found %d existing files. Deleting them...", len(existing))
        for document in existing:
            if document.remote_handle:
                logger.info("Deleting %s (%s)...", document.display_name, document.remote_handle)
                registry.delete(document.remote_handle)

        uris = self.refresh(documents_dir)
        knowledge_base.replace(uris)
        knowledge_base.save()
        logger.info("Knowledge Base updated with %d files.", len(uris))
        return uris
