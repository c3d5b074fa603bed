"""Remote file-store and generation seams plus the google-genai adapter."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from rulebook_agent.types import Document, DocumentState

_STATE_ALIASES = {
    "STATE_UNSPECIFIED": DocumentState.PENDING,
    "PENDING": DocumentState.PENDING,
    "PROCESSING": DocumentState.PROCESSING,
    "ACTIVE": DocumentState.ACTIVE,
    "FAILED": DocumentState.FAILED,
}


@dataclass(slots=True)
class RemoteFile:
    """The file store's view of one uploaded file."""

    name: str
    state: DocumentState
    uri: str | None = None
    display_name: str | None = None
    mime_type: str | None = None
    create_time: str | None = None


class FileStore(Protocol):
    def upload(self, path: str, *, mime_type: str, display_name: str) -> RemoteFile: ...

    def get(self, name: str) -> RemoteFile: ...

    def list(self) -> list[RemoteFile]: ...

    def delete(self, name: str) -> None: ...


class GenerationClient(Protocol):
    def generate(
        self, *, model: str, file_uris: Sequence[str], mime_type: str, question: str
    ) -> str: ...


def parse_state(raw: Any) -> DocumentState:
    """Normalize an SDK state value (enum member or string) to `DocumentState`."""

    value = getattr(raw, "name", None) or getattr(raw, "value", None) or raw
    key = str(value or "STATE_UNSPECIFIED").rsplit(".", 1)[-1].upper()
    return _STATE_ALIASES.get(key, DocumentState.FAILED)


def to_document(
    remote: RemoteFile,
    *,
    local_path: str | None = None,
    mime_type: str | None = None,
    display_name: str | None = None,
) -> Document:
    state = remote.state
    uri = remote.uri if state is DocumentState.ACTIVE else None
    if state is DocumentState.ACTIVE and not uri:
        state = DocumentState.FAILED
    name = display_name or remote.display_name or remote.name
    return Document(
        local_path=local_path or name,
        mime_type=mime_type or remote.mime_type or "application/octet-stream",
        display_name=name,
        remote_handle=remote.name,
        uri=uri,
        state=state,
        create_time=remote.create_time,
    )


class GenAIRemote:
    """`FileStore` and `GenerationClient` backed by the google-genai SDK.

    The host constructs one instance and injects it into the uploader,
    registry and executor; nothing here is a module-level singleton.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_api_key(cls, api_key: str, *, api_version: str = "v1beta") -> "GenAIRemote":
        if not api_key:
            raise ValueError("GEMINI_API_KEY is not set")

        from google import genai
        from google.genai import types

        client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(api_version=api_version),
        )
        return cls(client)

    def upload(self, path: str, *, mime_type: str, display_name: str) -> RemoteFile:
        from google.genai import types

        uploaded = self._client.files.upload(
            file=path,
            config=types.UploadFileConfig(mime_type=mime_type, display_name=display_name),
        )
        return _from_sdk_file(uploaded)

    def get(self, name: str) -> RemoteFile:
        return _from_sdk_file(self._client.files.get(name=name))

    def list(self) -> list[RemoteFile]:
        return [_from_sdk_file(item) for item in self._client.files.list()]

    def delete(self, name: str) -> None:
        self._client.files.delete(name=name)

    def generate(
        self, *, model: str, file_uris: Sequence[str], mime_type: str, question: str
    ) -> str:
        from google.genai import types

        parts = [types.Part.from_uri(file_uri=uri, mime_type=mime_type) for uri in file_uris]
        parts.append(types.Part.from_text(text=question))
        response = self._client.models.generate_content(model=model, contents=parts)
        return response.text or ""


def _from_sdk_file(item: Any) -> RemoteFile:
    create_time = getattr(item, "create_time", None)
    return RemoteFile(
        name=str(item.name),
        state=parse_state(getattr(item, "state", None)),
        uri=getattr(item, "uri", None),
        display_name=getattr(item, "display_name", None),
        mime_type=getattr(item, "mime_type", None),
        create_time=create_time.isoformat() if hasattr(create_time, "isoformat") else create_time,
    )
