"""Upload a local file and wait for the remote store to finish processing it."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from rulebook_agent.config import UploadConfig
from rulebook_agent.errors import ProcessingFailed, QueryCancelled, UploadTimedOut
from rulebook_agent.obs.tracing import Timer
from rulebook_agent.remote import FileStore, to_document
from rulebook_agent.types import Document, DocumentState

logger = logging.getLogger(__name__)


class DocumentUploader:
    """Pushes files to the store and blocks until each reaches a terminal state.

    The store offers no push notification, so processing is observed by
    polling `get()` at a fixed interval. Polling is bounded by both
    `max_poll_attempts` and `max_wait_seconds`, whichever is hit first.
    """

    def __init__(self, store: FileStore, config: UploadConfig | None = None) -> None:
        self.store = store
        self.config = config or UploadConfig()

    def upload(
        self,
        path: str | Path,
        mime_type: str | None = None,
        display_name: str | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> Document:
        local_path = str(path)
        if not local_path.strip() or not Path(local_path).name:
            raise ValueError(f"Upload path must name a file, got {local_path!r}")

        mime_type = mime_type or self.config.mime_type
        display_name = display_name or Path(local_path).name
        waiter = cancel or threading.Event()

        submitted = self.store.upload(local_path, mime_type=mime_type, display_name=display_name)
        remote = self.store.get(submitted.name)
        logger.info("Uploaded file %s as: %s", display_name, remote.name)

        polls = 0
        with Timer() as timer:
            while remote.state in (DocumentState.PENDING, DocumentState.PROCESSING):
                if polls >= self.config.max_poll_attempts or timer.elapsed_seconds >= self.config.max_wait_seconds:
                    raise UploadTimedOut(remote.name, remote.state, timer.elapsed_seconds)
                if waiter.wait(self.config.poll_interval_seconds):
                    raise QueryCancelled(f"Upload of {display_name} cancelled while processing")
                polls += 1
                remote = self.store.get(submitted.name)

        document = to_document(
            remote, local_path=local_path, mime_type=mime_type, display_name=display_name
        )
        if document.state is not DocumentState.ACTIVE:
            raise ProcessingFailed(document.remote_handle, document.state)

        logger.info(
            "File processing complete: %s (%d polls, %.0f ms)",
            document.uri,
            polls,
            timer.elapsed_ms,
        )
        return document
