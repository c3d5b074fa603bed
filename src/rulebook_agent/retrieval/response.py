"""Typed normalization of retrieval-with-summary responses.

The backend returns either a bare list of results or a response object,
keys may arrive camelCase (REST/JSON) or snake_case (proto `to_dict`), and
derived document fields may be a plain mapping or a protobuf `Struct`
encoded as `{"fields": {"link": {"stringValue": ...}}}`. Everything is
normalized here, once, so formatting code only sees `SearchResponse`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class StructValue(_Payload):
    """One protobuf `Value` in its JSON encoding."""

    string_value: str | None = Field(default=None, validation_alias=AliasChoices("stringValue", "string_value"))
    number_value: float | None = Field(default=None, validation_alias=AliasChoices("numberValue", "number_value"))
    bool_value: bool | None = Field(default=None, validation_alias=AliasChoices("boolValue", "bool_value"))

    def to_python(self) -> Any:
        for value in (self.string_value, self.number_value, self.bool_value):
            if value is not None:
                return value
        return None


class StructFields(_Payload):
    """Protobuf `Struct` wrapper shape."""

    fields: dict[str, StructValue]

    def to_plain(self) -> dict[str, Any]:
        return {key: value.to_python() for key, value in self.fields.items()}


class ResultDocument(_Payload):
    name: str | None = None
    derived: StructFields | dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("derivedStructData", "derived_struct_data"),
        union_mode="left_to_right",
    )

    @property
    def fields(self) -> dict[str, Any]:
        if isinstance(self.derived, StructFields):
            return self.derived.to_plain()
        return self.derived or {}

    def field(self, key: str) -> str | None:
        value = self.fields.get(key)
        return str(value) if value else None


class SearchResult(_Payload):
    document: ResultDocument | None = None


class CitationSource(_Payload):
    uri: str | None = None
    title: str | None = None
    reference_index: int | None = Field(
        default=None, validation_alias=AliasChoices("referenceIndex", "reference_index")
    )


class SummaryCitation(_Payload):
    sources: list[CitationSource] = Field(default_factory=list)


class SummaryReference(_Payload):
    uri: str | None = None
    title: str | None = None


class Summary(_Payload):
    summary_text: str | None = Field(default=None, validation_alias=AliasChoices("summaryText", "summary_text"))
    citations: list[SummaryCitation] = Field(default_factory=list)
    references: list[SummaryReference] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _lift_metadata(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        metadata = data.get("summaryWithMetadata") or data.get("summary_with_metadata")
        if not isinstance(metadata, Mapping):
            return data

        lifted = dict(data)
        citation_meta = metadata.get("citationMetadata") or metadata.get("citation_metadata") or {}
        if not lifted.get("citations") and isinstance(citation_meta, Mapping):
            lifted["citations"] = citation_meta.get("citations") or []
        if not lifted.get("references"):
            lifted["references"] = metadata.get("references") or []
        return lifted

    def resolve(self, source: CitationSource) -> CitationSource:
        """Fill a source's uri/title from the reference it points at."""
        if source.uri or source.reference_index is None:
            return source
        if 0 <= source.reference_index < len(self.references):
            reference = self.references[source.reference_index]
            return CitationSource(uri=reference.uri, title=source.title or reference.title)
        return source


class SearchResponse(_Payload):
    summary: Summary | None = None
    results: list[SearchResult] = Field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: Any) -> "SearchResponse":
        if raw is None:
            return cls()
        if not isinstance(raw, (Mapping, list, tuple)):
            to_dict = getattr(type(raw), "to_dict", None)
            if not callable(to_dict):
                raise TypeError(f"Unsupported search response type: {type(raw).__name__}")
            raw = to_dict(raw)
        if isinstance(raw, (list, tuple)):
            return cls.model_validate({"results": list(raw)})
        return cls.model_validate(raw)
