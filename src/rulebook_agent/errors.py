"""Error taxonomy and classification for remote API failures."""

from __future__ import annotations

import re
from enum import Enum

from rulebook_agent.types import DocumentState

_CONTEXT_INVALID_CODES = frozenset({403, 404})
_CAPACITY_CODES = frozenset({429, 503})
_CONTEXT_INVALID_TEXT = re.compile(r"\b(?:404|403|NOT_FOUND|PERMISSION_DENIED)\b")
_CAPACITY_TEXT = re.compile(r"\b(?:429|503|RESOURCE_EXHAUSTED|UNAVAILABLE)\b")


class ErrorKind(str, Enum):
    CONTEXT_INVALID = "context_invalid"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    FATAL = "fatal"


class RemoteError(RuntimeError):
    """Transport error carrying an HTTP-like status code."""

    def __init__(self, code: int | None, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class ProcessingFailed(RuntimeError):
    """An uploaded document reached a terminal state other than ACTIVE."""

    def __init__(self, remote_handle: str | None, last_state: DocumentState) -> None:
        super().__init__(
            f"File {remote_handle} failed to process. State: {last_state.value}"
        )
        self.remote_handle = remote_handle
        self.last_state = last_state


class UploadTimedOut(RuntimeError):
    """An uploaded document was still processing when the poll budget ran out."""

    def __init__(
        self, remote_handle: str | None, last_state: DocumentState, waited_seconds: float
    ) -> None:
        super().__init__(
            f"File {remote_handle} still {last_state.value} after {waited_seconds:.1f}s"
        )
        self.remote_handle = remote_handle
        self.last_state = last_state
        self.waited_seconds = waited_seconds


class QueryCancelled(RuntimeError):
    """The caller cancelled an in-flight query or upload."""


def status_code_of(exc: BaseException) -> int | None:
    for attr in ("code", "status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def classify_error(exc: BaseException) -> ErrorKind:
    """Map a remote failure onto the retry taxonomy.

    An integer status code decides on its own. Without one, the message text
    is scanned for whole-word status markers, context validity first, since
    the SDK does not surface errors uniformly.
    """

    code = status_code_of(exc)
    if code is not None:
        if code in _CONTEXT_INVALID_CODES:
            return ErrorKind.CONTEXT_INVALID
        if code in _CAPACITY_CODES:
            return ErrorKind.CAPACITY_EXCEEDED
        return ErrorKind.FATAL

    text = " ".join(
        str(part)
        for part in (getattr(exc, "status", None), getattr(exc, "message", None), exc)
        if part
    ).upper()

    if _CONTEXT_INVALID_TEXT.search(text):
        return ErrorKind.CONTEXT_INVALID
    if _CAPACITY_TEXT.search(text):
        return ErrorKind.CAPACITY_EXCEEDED
    return ErrorKind.FATAL
