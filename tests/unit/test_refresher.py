import json
import threading
from pathlib import Path

import pytest

from rulebook_agent.config import RefreshConfig, UploadConfig
from rulebook_agent.errors import QueryCancelled
from rulebook_agent.ingest.manifest import KnowledgeBase
from rulebook_agent.ingest.refresher import ContextRefresher
from rulebook_agent.ingest.registry import DocumentRegistry
from rulebook_agent.ingest.uploader import DocumentUploader

_FAST = UploadConfig(poll_interval_seconds=0.001, max_poll_attempts=10)


def _refresher(remote, documents_dir: Path) -> ContextRefresher:
    return ContextRefresher(
        DocumentUploader(remote, _FAST), RefreshConfig(documents_dir=str(documents_dir))
    )


def test_scan_is_non_recursive_and_case_insensitive(fake_remote, documents_dir: Path) -> None:
    files = _refresher(fake_remote, documents_dir).scan()

    assert [path.name for path in files] == ["rule-101.pdf", "rule-102.PDF"]


def test_refresh_returns_uris_in_scan_order(fake_remote, documents_dir: Path) -> None:
    uris = _refresher(fake_remote, documents_dir).refresh()

    assert uris == ["https://files.example/files/file-001", "https://files.example/files/file-002"]


def test_refresh_skips_failed_uploads(make_remote, tmp_path: Path) -> None:
    for name in ("a.pdf", "b.pdf", "c.pdf"):
        (tmp_path / name).write_bytes(b"%PDF")
    remote = make_remote(failing=["b.pdf"])

    uris = _refresher(remote, tmp_path).refresh()

    assert uris == ["https://files.example/files/file-001", "https://files.example/files/file-003"]


def test_refresh_returns_empty_when_everything_fails(make_remote, tmp_path: Path) -> None:
    (tmp_path / "a.pdf").write_bytes(b"%PDF")
    remote = make_remote(failing=["a.pdf"])

    assert _refresher(remote, tmp_path).refresh() == []


def test_refresh_missing_directory_is_empty(fake_remote, tmp_path: Path) -> None:
    assert _refresher(fake_remote, tmp_path / "nope").refresh() == []


def test_refresh_propagates_cancellation(make_remote, documents_dir: Path) -> None:
    remote = make_remote(processing_polls=100)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(QueryCancelled):
        _refresher(remote, documents_dir).refresh(cancel=cancel)

    assert remote.files == {}


def test_refresh_stops_between_files_after_cancel(make_remote, documents_dir: Path) -> None:
    remote = make_remote(processing_polls=0)
    cancel = threading.Event()
    upload = remote.upload

    def _upload_then_cancel(path, **kwargs):
        cancel.set()
        return upload(path, **kwargs)

    remote.upload = _upload_then_cancel

    with pytest.raises(QueryCancelled):
        _refresher(remote, documents_dir).refresh(cancel=cancel)

    assert list(remote.files) == ["files/file-001"]


def test_sync_replaces_remote_files_and_writes_manifest(fake_remote, documents_dir: Path, tmp_path: Path) -> None:
    stale = fake_remote.upload("old.pdf", mime_type="application/pdf", display_name="old.pdf")
    knowledge_base = KnowledgeBase(tmp_path / "knowledgeBase.json", ["https://files.example/stale"])

    uris = _refresher(fake_remote, documents_dir).sync(DocumentRegistry(fake_remote), knowledge_base)

    assert fake_remote.deleted == [stale.name]
    assert knowledge_base.uris == tuple(uris)
    assert len(uris) == 2
    assert json.loads((tmp_path / "knowledgeBase.json").read_text(encoding="utf-8")) == uris
