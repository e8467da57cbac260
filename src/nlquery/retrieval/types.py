"""Types for raw engine hits and normalized search results."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RawHit(BaseModel):
    id: str
    score: float | None = None
    source: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_es_hit(cls, hit: dict[str, Any]) -> "RawHit":
        # _score is null for pure filter queries and sorted searches
        return cls(id=str(hit["_id"]), score=hit.get("_score"), source=hit.get("_source") or {})


class SearchHits(BaseModel):
    hits: list[RawHit] = Field(default_factory=list)
    total: int = 0


class SearchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    score: float | None = None
    source: dict[str, Any] = Field(default_factory=dict)
