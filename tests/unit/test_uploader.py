import threading
from pathlib import Path

import pytest

from rulebook_agent.config import UploadConfig
from rulebook_agent.errors import ProcessingFailed, QueryCancelled, UploadTimedOut
from rulebook_agent.ingest.uploader import DocumentUploader
from rulebook_agent.types import DocumentState

_FAST = UploadConfig(poll_interval_seconds=0.001, max_poll_attempts=10)


def test_upload_polls_until_active(make_remote, tmp_path: Path) -> None:
    remote = make_remote(processing_polls=3)
    path = tmp_path / "manual.pdf"
    path.write_bytes(b"%PDF")

    document = DocumentUploader(remote, _FAST).upload(path)

    assert document.state is DocumentState.ACTIVE
    assert document.uri == "https://files.example/files/file-001"
    assert document.remote_handle == "files/file-001"
    assert document.display_name == "manual.pdf"
    assert document.mime_type == "application/pdf"
    assert remote.gets["files/file-001"] == 4


def test_upload_raises_processing_failed(make_remote, tmp_path: Path) -> None:
    remote = make_remote(failing=["broken.pdf"])

    with pytest.raises(ProcessingFailed) as info:
        DocumentUploader(remote, _FAST).upload(tmp_path / "broken.pdf")

    assert info.value.remote_handle == "files/file-001"
    assert info.value.last_state is DocumentState.FAILED


def test_upload_times_out_after_max_attempts(make_remote, tmp_path: Path) -> None:
    remote = make_remote(processing_polls=100)
    config = UploadConfig(poll_interval_seconds=0.001, max_poll_attempts=2)

    with pytest.raises(UploadTimedOut) as info:
        DocumentUploader(remote, config).upload(tmp_path / "slow.pdf")

    assert info.value.last_state is DocumentState.PROCESSING
    assert remote.gets["files/file-001"] == 3


def test_upload_releases_poll_on_cancel(make_remote, tmp_path: Path) -> None:
    remote = make_remote(processing_polls=100)
    cancel = threading.Event()
    cancel.set()
    config = UploadConfig(poll_interval_seconds=30.0)

    with pytest.raises(QueryCancelled):
        DocumentUploader(remote, config).upload(tmp_path / "slow.pdf", cancel=cancel)

    assert remote.gets["files/file-001"] == 1


def test_upload_uses_explicit_display_name_and_mime(make_remote, tmp_path: Path) -> None:
    remote = make_remote(processing_polls=0)

    document = DocumentUploader(remote, _FAST).upload(
        tmp_path / "manual.pdf", "text/plain", "FRC Game Manual"
    )

    assert document.display_name == "FRC Game Manual"
    assert document.mime_type == "text/plain"


def test_upload_times_out_after_max_wait(make_remote, tmp_path: Path) -> None:
    remote = make_remote(processing_polls=1000)
    config = UploadConfig(poll_interval_seconds=0.01, max_poll_attempts=1000, max_wait_seconds=0.02)

    with pytest.raises(UploadTimedOut) as info:
        DocumentUploader(remote, config).upload(tmp_path / "slow.pdf")

    assert info.value.waited_seconds >= 0.02
    assert remote.gets["files/file-001"] < 1000


@pytest.mark.parametrize("path", ["", "   ", Path("")])
def test_upload_rejects_empty_path(fake_remote, path) -> None:
    with pytest.raises(ValueError):
        DocumentUploader(fake_remote, _FAST).upload(path)

    assert fake_remote.files == {}
