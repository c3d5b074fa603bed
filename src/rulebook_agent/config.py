"""Configuration models for the rulebook agent."""

from __future__ import annotations

from pydantic import BaseModel, Field


class UploadConfig(BaseModel):
    """Configures document upload and the processing poll loop."""

    mime_type: str = Field(default="application/pdf", min_length=1)
    poll_interval_seconds: float = Field(default=2.0, gt=0.0)
    max_poll_attempts: int = Field(default=150, ge=1)
    max_wait_seconds: float = Field(default=600.0, gt=0.0)


class RefreshConfig(BaseModel):
    """Configures which local files make up the knowledge base."""

    documents_dir: str = "documents"
    extension: str = Field(default=".pdf", min_length=1)


class ModelTierConfig(BaseModel):
    """Configures the model tiers used for capacity fallback."""

    primary: str | None = None
    standard: str = Field(default="gemini-2.5-flash", min_length=1)
    economy: str = Field(default="gemini-2.5-flash-lite", min_length=1)
    high_capability_marker: str = "pro"
    economy_marker: str = "lite"
    api_version: str = "v1beta"

    @property
    def default_model(self) -> str:
        return self.primary or self.standard


class SearchConfig(BaseModel):
    """Configures the alternative retrieval backend request."""

    project_id: str = Field(min_length=1)
    data_store_id: str = Field(min_length=1)
    location: str = "global"
    collection_id: str = "default_collection"
    serving_config_id: str = "default_config"
    page_size: int = Field(default=5, ge=1, le=100)
    summary_result_count: int = Field(default=5, ge=1, le=10)
    model_version: str = "preview"
