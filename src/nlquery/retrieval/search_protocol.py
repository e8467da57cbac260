"""SearchExecutor Protocol for the search-execution collaborator.

Lets the query pipeline run against the Elasticsearch-backed
SearchExecutionService or any test double with the same shape.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from nlquery.retrieval.types import SearchHits


@runtime_checkable
class SearchExecutor(Protocol):
    async def search(self, dsl: str, index: str) -> SearchHits: ...
