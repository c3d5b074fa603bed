"""Attempt tracing for the query executor."""

from __future__ import annotations

import threading
import time
from collections import Counter
from dataclasses import asdict
from typing import Any

from rulebook_agent.types import AttemptOutcome, QueryAttempt


class AttemptLog:
    """In-memory, bounded log of generation attempts for API-level observability."""

    def __init__(self, max_records: int = 500) -> None:
        self._records: list[QueryAttempt] = []
        self._max_records = max_records
        self._lock = threading.Lock()

    def record(self, attempt: QueryAttempt) -> None:
        with self._lock:
            self._records.append(attempt)
            if len(self._records) > self._max_records:
                del self._records[: len(self._records) - self._max_records]

    def list_recent(self, limit: int = 20) -> list[QueryAttempt]:
        with self._lock:
            return list(self._records[-limit:]) if limit > 0 else []

    def summary(self) -> dict[str, Any]:
        """Aggregate attempt counts for dashboard display."""
        with self._lock:
            records = list(self._records)
        if not records:
            return {
                "total_attempts": 0,
                "successes": 0,
                "retryable_failures": 0,
                "fatal_failures": 0,
                "avg_latency_ms": 0.0,
                "attempts_by_model": {},
            }

        outcomes = Counter(record.outcome for record in records)
        return {
            "total_attempts": len(records),
            "successes": outcomes[AttemptOutcome.SUCCESS],
            "retryable_failures": outcomes[AttemptOutcome.RETRYABLE],
            "fatal_failures": outcomes[AttemptOutcome.FATAL],
            "avg_latency_ms": sum(record.latency_ms for record in records) / len(records),
            "attempts_by_model": dict(Counter(record.model for record in records)),
        }


def attempt_as_dict(attempt: QueryAttempt) -> dict[str, Any]:
    payload = asdict(attempt)
    payload["context_uris"] = list(attempt.context_uris)
    payload["outcome"] = attempt.outcome.value
    return payload


class Timer:
    """Context timer; `elapsed_seconds` is live while the block runs."""

    def __init__(self) -> None:
        self._start = 0.0
        self._stop: float | None = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._stop = None
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self._stop = time.perf_counter()

    @property
    def elapsed_seconds(self) -> float:
        end = self._stop if self._stop is not None else time.perf_counter()
        return end - self._start

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed_seconds * 1000.0
