"""Structured query types and their rendering to Elasticsearch query DSL."""

from __future__ import annotations

import json
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

ALL_FIELDS = "_all"
DEFAULT_SIZE = 10
RANGE_BOUNDS = frozenset({"gt", "gte", "lt", "lte"})


class _Expression(BaseModel):
    model_config = ConfigDict(frozen=True)

    def to_dsl(self) -> dict[str, Any]:
        raise NotImplementedError


class Match(_Expression):
    field: str
    text: str
    operator: Literal["and", "or"] = "and"

    def to_dsl(self) -> dict[str, Any]:
        return {"match": {self.field: {"query": self.text, "operator": self.operator}}}


class Term(_Expression):
    field: str
    value: Any

    def to_dsl(self) -> dict[str, Any]:
        return {"term": {self.field: self.value}}


class Range(_Expression):
    field: str
    bounds: dict[str, Any]

    @field_validator("bounds")
    @classmethod
    def _known_bounds(cls, bounds: dict[str, Any]) -> dict[str, Any]:
        if not bounds:
            raise ValueError("range requires at least one bound")
        unknown = set(bounds) - RANGE_BOUNDS
        if unknown:
            raise ValueError(f"unknown range bounds: {sorted(unknown)}")
        return bounds

    def to_dsl(self) -> dict[str, Any]:
        return {"range": {self.field: dict(self.bounds)}}


class QueryString(_Expression):
    text: str
    default_field: str = ALL_FIELDS

    def to_dsl(self) -> dict[str, Any]:
        return {"query_string": {"query": self.text, "default_field": self.default_field}}


class Bool(_Expression):
    must: list[QueryExpression] = Field(default_factory=list)
    should: list[QueryExpression] = Field(default_factory=list)
    must_not: list[QueryExpression] = Field(default_factory=list)
    filter: list[QueryExpression] = Field(default_factory=list)

    def to_dsl(self) -> dict[str, Any]:
        # Empty clauses are omitted; the engine rejects empty clause objects
        clauses = {
            name: [expr.to_dsl() for expr in exprs]
            for name, exprs in (
                ("must", self.must),
                ("should", self.should),
                ("must_not", self.must_not),
                ("filter", self.filter),
            )
            if exprs
        }
        return {"bool": clauses}


QueryExpression = Union[Match, Term, Range, Bool, QueryString]
Bool.model_rebuild()


class StructuredQuery(BaseModel):
    """A query expression plus paging, as sent to the search engine."""

    model_config = ConfigDict(frozen=True)

    query: QueryExpression
    size: int = Field(default=DEFAULT_SIZE, ge=0)
    from_: int | None = Field(default=None, ge=0)

    def to_dsl(self) -> dict[str, Any]:
        body: dict[str, Any] = {"query": self.query.to_dsl(), "size": self.size}
        if self.from_ is not None:
            body["from"] = self.from_
        return body

    def to_json(self) -> str:
        return json.dumps(self.to_dsl(), indent=2, allow_nan=False)
