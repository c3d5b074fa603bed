"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DocumentState(str, Enum):
    """Processing state of an uploaded context document."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (DocumentState.ACTIVE, DocumentState.FAILED)


@dataclass(slots=True)
class Document:
    """One context file and its view in the remote file store.

    `uri` is set if and only if `state` is `ACTIVE`.
    """

    local_path: str
    mime_type: str
    display_name: str
    remote_handle: str | None = None
    uri: str | None = None
    state: DocumentState = DocumentState.PENDING
    create_time: str | None = None

    def __post_init__(self) -> None:
        if not self.local_path:
            raise ValueError("Document local_path must not be empty")
        if (self.uri is not None) != (self.state is DocumentState.ACTIVE):
            raise ValueError(
                f"Document uri must be set exactly when ACTIVE (state={self.state.value})"
            )


@dataclass(slots=True)
class Citation:
    """A numbered pointer from generated summary text to its source."""

    index: int
    source_uri: str
    source_title: str | None = None

    @property
    def title(self) -> str:
        if self.source_title:
            return self.source_title
        tail = self.source_uri.rstrip("/").rsplit("/", 1)[-1]
        return tail or "Source"


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass(slots=True)
class QueryAttempt:
    """Trace record for one outbound generation request."""

    question: str
    context_uris: tuple[str, ...]
    model: str
    outcome: AttemptOutcome
    error_kind: str | None = None
    error_message: str | None = None
    latency_ms: float = 0.0
