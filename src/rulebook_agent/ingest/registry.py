"""Live view of the documents held by the remote file store."""

from __future__ import annotations

import logging

from rulebook_agent.errors import status_code_of
from rulebook_agent.remote import FileStore, to_document
from rulebook_agent.types import Document

logger = logging.getLogger(__name__)


class DocumentRegistry:
    """Delegates list/delete to the file store; nothing is cached locally."""

    def __init__(self, store: FileStore) -> None:
        self.store = store

    def list(self) -> list[Document]:
        return [to_document(remote) for remote in self.store.list() or []]

    def delete(self, remote_handle: str) -> None:
        if not remote_handle:
            raise ValueError("remote_handle must not be empty")
        try:
            self.store.delete(remote_handle)
        except Exception as exc:
            if status_code_of(exc) != 404:
                raise
            logger.info("File %s already absent from the store", remote_handle)
            return
        logger.info("Deleted file %s", remote_handle)
