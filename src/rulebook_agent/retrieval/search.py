"""Alternative retrieval backend: Vertex AI Search with generated summaries."""

from __future__ import annotations

import logging
from typing import Any

from rulebook_agent.config import SearchConfig
from rulebook_agent.retrieval.formatter import SEARCH_FAILED, SearchResultFormatter

logger = logging.getLogger(__name__)


class VertexSearch:
    """Issues a summary-with-citations search and formats the first page."""

    def __init__(
        self,
        client: Any,
        config: SearchConfig,
        formatter: SearchResultFormatter | None = None,
    ) -> None:
        self.client = client
        self.config = config
        self.formatter = formatter or SearchResultFormatter()

    @classmethod
    def from_config(cls, config: SearchConfig) -> "VertexSearch":
        from google.cloud import discoveryengine_v1beta as discoveryengine

        return cls(discoveryengine.SearchServiceClient(), config)

    @property
    def serving_config(self) -> str:
        c = self.config
        return (
            f"projects/{c.project_id}/locations/{c.location}/collections/{c.collection_id}"
            f"/dataStores/{c.data_store_id}/servingConfigs/{c.serving_config_id}"
        )

    def build_request(self, query: str) -> dict[str, Any]:
        if not query or not query.strip():
            raise ValueError("Search query must not be empty")
        return {
            "serving_config": self.serving_config,
            "query": query,
            "page_size": self.config.page_size,
            "content_search_spec": {
                "summary_spec": {
                    "summary_result_count": self.config.summary_result_count,
                    "ignore_adversarial_query": True,
                    "include_citations": True,
                    "model_spec": {"version": self.config.model_version},
                },
                "snippet_spec": {"return_snippet": True},
            },
        }

    def search(self, query: str) -> str:
        """Run the search and return formatted answer text; never raises."""
        try:
            response = self.client.search(request=self.build_request(query))
            page = _first_page(response)
        except Exception:
            logger.exception("Error querying Vertex AI Search")
            return SEARCH_FAILED
        return self.formatter.format(page)


def _first_page(response: Any) -> Any:
    pages = getattr(response, "pages", None)
    if pages is None:
        return response
    return next(iter(pages), None)
