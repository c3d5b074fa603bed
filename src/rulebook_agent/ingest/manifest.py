"""Persisted knowledge-base manifest: a JSON array of document URIs."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


class KnowledgeBase:
    """Holds the active context set and mirrors it to a manifest file.

    The set is only ever swapped as a whole, so a query never sees a mix of
    stale and fresh URIs.
    """

    def __init__(self, path: str | Path, uris: Iterable[str] = ()) -> None:
        self.path = Path(path)
        self._uris: tuple[str, ...] = tuple(uris)
        self._lock = threading.Lock()

    @classmethod
    def load(cls, path: str | Path) -> "KnowledgeBase":
        manifest = Path(path)
        if not manifest.exists():
            logger.warning("%s not found. Bot will not have context until synced.", manifest)
            return cls(manifest)

        payload = json.loads(manifest.read_text(encoding="utf-8"))
        if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
            raise ValueError(f"Manifest {manifest} must be a JSON array of URI strings")
        logger.info("Loaded %d file URIs from knowledge base.", len(payload))
        return cls(manifest, payload)

    @property
    def uris(self) -> tuple[str, ...]:
        with self._lock:
            return self._uris

    def replace(self, uris: Iterable[str]) -> None:
        fresh = tuple(uris)
        with self._lock:
            self._uris = fresh
        logger.info("Knowledge base replaced with %d file URIs", len(fresh))

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(list(self.uris), indent=2), encoding="utf-8")
