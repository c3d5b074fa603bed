"""Question answering over the context set with tiered fallback."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from pathlib import Path

from rulebook_agent.agent.tiers import ModelLadder
from rulebook_agent.config import ModelTierConfig, UploadConfig
from rulebook_agent.errors import ErrorKind, QueryCancelled, classify_error
from rulebook_agent.ingest.refresher import ContextRefresher
from rulebook_agent.obs.tracing import Timer
from rulebook_agent.remote import GenerationClient
from rulebook_agent.types import AttemptOutcome, QueryAttempt

logger = logging.getLogger(__name__)


class FallbackQueryExecutor:
    """Sends a question plus context URIs to the model and recovers from failures.

    Recovery ladder for one `query()` call:

    - context rejected (403/404): refresh the context set once and retry the
      same model with the new URIs; an empty refresh re-raises the original
      error.
    - capacity (429/503): step down through `ModelLadder.plan(primary)` with
      the current URIs; once stepping down, any failure other than a rejected
      context moves to the next model, and the last failure is re-raised when
      the plan runs out.
    - anything else on the primary attempt: re-raised unchanged.

    The executor keeps no per-call state on the instance, so one instance can
    serve concurrent questions.
    """

    def __init__(
        self,
        client: GenerationClient,
        *,
        refresher: ContextRefresher | None = None,
        documents_dir: str | Path | None = None,
        config: ModelTierConfig | None = None,
        upload_config: UploadConfig | None = None,
        ladder: ModelLadder | None = None,
        on_context_refreshed: Callable[[list[str]], None] | None = None,
        observer: Callable[[QueryAttempt], None] | None = None,
    ) -> None:
        self.client = client
        self.refresher = refresher
        self.documents_dir = documents_dir
        self.config = config or ModelTierConfig()
        self.mime_type = (upload_config or UploadConfig()).mime_type
        self.ladder = ladder or ModelLadder.from_config(self.config)
        self._on_context_refreshed = on_context_refreshed
        self._observer = observer

    def set_observer(self, observer: Callable[[QueryAttempt], None] | None) -> None:
        """Set an optional callback invoked after each generation attempt."""
        self._observer = observer

    def query(
        self,
        question: str,
        context_uris: Sequence[str],
        primary_model: str | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> str:
        if not question or not question.strip():
            raise ValueError("Question must not be empty")

        model = primary_model or self.config.default_model
        uris = tuple(context_uris)
        fallbacks = iter(self.ladder.plan(model))
        refreshed = False
        stepping_down = False

        while True:
            if cancel is not None and cancel.is_set():
                raise QueryCancelled(f"Query cancelled before attempting {model}")
            try:
                return self._attempt(question, uris, model)
            except Exception as exc:
                kind = classify_error(exc)
                logger.warning("Error with model %s (%s): %s", model, kind.value, exc)

                if kind is ErrorKind.CONTEXT_INVALID and not refreshed:
                    refreshed = True
                    fresh = self._refresh(cancel)
                    if not fresh:
                        logger.error("Context refresh produced no files; giving up")
                        raise
                    uris = tuple(fresh)
                    continue

                if kind is ErrorKind.CAPACITY_EXCEEDED or (
                    stepping_down and kind is not ErrorKind.CONTEXT_INVALID
                ):
                    next_model = next(fallbacks, None)
                    if next_model is not None:
                        logger.info("Falling back to %s...", next_model)
                        model = next_model
                        stepping_down = True
                        continue
                    logger.error("Critical: all fallback models failed.")
                raise

    def _attempt(self, question: str, uris: tuple[str, ...], model: str) -> str:
        logger.info("Using model: %s with %d context files", model, len(uris))
        error: Exception | None = None
        with Timer() as timer:
            try:
                answer = self.client.generate(
                    model=model, file_uris=uris, mime_type=self.mime_type, question=question
                )
            except Exception as exc:
                error = exc

        if error is None:
            self._observe(
                QueryAttempt(
                    question=question,
                    context_uris=uris,
                    model=model,
                    outcome=AttemptOutcome.SUCCESS,
                    latency_ms=timer.elapsed_ms,
                )
            )
            return answer

        kind = classify_error(error)
        self._observe(
            QueryAttempt(
                question=question,
                context_uris=uris,
                model=model,
                outcome=AttemptOutcome.FATAL if kind is ErrorKind.FATAL else AttemptOutcome.RETRYABLE,
                error_kind=kind.value,
                error_message=str(error),
                latency_ms=timer.elapsed_ms,
            )
        )
        raise error

    def _refresh(self, cancel: threading.Event | None) -> list[str]:
        if self.refresher is None:
            logger.error("Context rejected but no refresher is configured")
            return []

        logger.info("Context files rejected; re-uploading documents")
        fresh = self.refresher.refresh(self.documents_dir, cancel=cancel)
        if fresh and self._on_context_refreshed is not None:
            self._on_context_refreshed(list(fresh))
        return fresh

    def _observe(self, attempt: QueryAttempt) -> None:
        if self._observer is not None:
            self._observer(attempt)
        logger.info(
            "Generation attempt: %s - %s",
            attempt.model,
            attempt.outcome.value,
            extra={
                "structured": {
                    "model": attempt.model,
                    "outcome": attempt.outcome.value,
                    "error_kind": attempt.error_kind,
                    "context_files": len(attempt.context_uris),
                    "latency_ms": round(attempt.latency_ms, 2),
                }
            },
        )
