from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from rulebook_agent.errors import RemoteError
from rulebook_agent.remote import RemoteFile
from rulebook_agent.types import DocumentState


class FakeRemote:
    """In-memory file store and generation client.

    Files stay PROCESSING for `processing_polls` gets, then become ACTIVE,
    unless their display name is in `failing`. `replies` is consumed in
    order by `generate`; exceptions are raised, strings returned.
    """

    def __init__(
        self,
        *,
        processing_polls: int = 1,
        failing: Sequence[str] = (),
        replies: Sequence[object] = (),
    ) -> None:
        self.processing_polls = processing_polls
        self.failing = set(failing)
        self.replies = list(replies)
        self.files: dict[str, RemoteFile] = {}
        self.gets: dict[str, int] = {}
        self.generate_calls: list[tuple[str, tuple[str, ...], str]] = []
        self.deleted: list[str] = []
        self._counter = 0

    def upload(self, path: str, *, mime_type: str, display_name: str) -> RemoteFile:
        self._counter += 1
        name = f"files/file-{self._counter:03d}"
        remote = RemoteFile(
            name=name,
            state=DocumentState.PROCESSING,
            display_name=display_name,
            mime_type=mime_type,
        )
        self.files[name] = remote
        self.gets[name] = 0
        return remote

    def get(self, name: str) -> RemoteFile:
        remote = self.files[name]
        self.gets[name] += 1
        if remote.state is DocumentState.PROCESSING and self.gets[name] > self.processing_polls:
            if remote.display_name in self.failing:
                remote.state = DocumentState.FAILED
            else:
                remote.state = DocumentState.ACTIVE
                remote.uri = f"https://files.example/{name}"
        return RemoteFile(
            name=remote.name,
            state=remote.state,
            uri=remote.uri,
            display_name=remote.display_name,
            mime_type=remote.mime_type,
        )

    def list(self) -> list[RemoteFile]:
        return list(self.files.values())

    def delete(self, name: str) -> None:
        if name not in self.files:
            raise RemoteError(404, f"File {name} not found")
        del self.files[name]
        self.deleted.append(name)

    def generate(
        self, *, model: str, file_uris: Sequence[str], mime_type: str, question: str
    ) -> str:
        self.generate_calls.append((model, tuple(file_uris), question))
        reply = self.replies.pop(0) if self.replies else f"answer from {model}"
        if isinstance(reply, BaseException):
            raise reply
        return str(reply)

    @property
    def models_called(self) -> list[str]:
        return [call[0] for call in self.generate_calls]


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def documents_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "documents"
    directory.mkdir()
    for name in ("rule-101.pdf", "rule-102.PDF", "notes.txt"):
        (directory / name).write_bytes(b"%PDF-1.4 test")
    nested = directory / "archive"
    nested.mkdir()
    (nested / "old.pdf").write_bytes(b"%PDF-1.4 old")
    return directory


@pytest.fixture
def make_remote() -> type[FakeRemote]:
    return FakeRemote
