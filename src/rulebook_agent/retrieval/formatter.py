"""Turn a retrieval-with-summary response into citation-linked answer text."""

from __future__ import annotations

import logging
from typing import Any

from rulebook_agent.retrieval.response import SearchResponse, SearchResult, Summary
from rulebook_agent.types import Citation

logger = logging.getLogger(__name__)

NOTHING_FOUND = "I couldn't find any specific information about that in the rules."
RESULTS_ONLY_HEADER = (
    "I found some relevant documents, but I can't generate a specific summary "
    "right now. You might find the answer in these files:"
)
SEARCH_FAILED = "Sorry, I encountered an error while searching the knowledge base."
SOURCES_SEPARATOR = "\n\n*Sources:*\n"

_BUCKET_SCHEME = "gs://"
_BROWSABLE_PREFIX = "https://storage.cloud.google.com/"


def browsable_uri(uri: str) -> str:
    """Rewrite a bucket URI to the equivalent browser URL."""
    if uri.startswith(_BUCKET_SCHEME):
        return _BROWSABLE_PREFIX + uri[len(_BUCKET_SCHEME):]
    return uri


def _uri_tail(uri: str) -> str:
    return uri.rstrip("/").rsplit("/", 1)[-1].split("?", 1)[0]


class SearchResultFormatter:
    """Renders summary+citations, else a result list, else a fixed message.

    `format` never raises; internal failures become an apology string.
    """

    def format(self, response: Any) -> str:
        try:
            normalized = SearchResponse.from_raw(response)
            summary = normalized.summary
            if summary is not None and summary.summary_text and summary.summary_text.strip():
                return self._with_citations(summary)
            if normalized.results:
                lines = [self._result_line(result) for result in normalized.results]
                return RESULTS_ONLY_HEADER + "\n" + "\n".join(lines)
            return NOTHING_FOUND
        except Exception:
            logger.exception("Error formatting search response")
            return SEARCH_FAILED

    def citations(self, summary: Summary) -> list[Citation]:
        cited: list[Citation] = []
        for position, citation in enumerate(summary.citations, start=1):
            if not citation.sources:
                continue
            source = summary.resolve(citation.sources[0])
            uri = browsable_uri(source.uri) if source.uri else "#"
            title = source.title or (_uri_tail(uri) if uri != "#" else None)
            cited.append(Citation(index=position, source_uri=uri, source_title=title))
        return cited

    def _with_citations(self, summary: Summary) -> str:
        references = [
            f"[{citation.index}] <{citation.source_uri}|{citation.source_title or 'Source'}>"
            for citation in self.citations(summary)
        ]
        if not references:
            return summary.summary_text or ""
        return (summary.summary_text or "") + SOURCES_SEPARATOR + "\n".join(references)

    @staticmethod
    def _result_line(result: SearchResult) -> str:
        document = result.document
        link = "#"
        title: str | None = None
        name: str | None = None
        if document is not None:
            link = browsable_uri(document.field("link") or document.field("uri") or "#")
            title = document.field("title")
            name = document.name

        # Untitled or id-like titles fall back to the file name.
        if not title or title.startswith("0"):
            if link != "#":
                title = _uri_tail(link)
            elif name:
                title = name.rsplit("/", 1)[-1]
            else:
                title = "Untitled Document"
        return f"- <{link}|{title}>"
