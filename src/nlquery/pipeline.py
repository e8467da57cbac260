"""One query cycle: convert natural language, execute the search, normalize the hits."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from nlquery.query.service import QueryConversionService
from nlquery.retrieval.mapper import map_hits
from nlquery.retrieval.search_protocol import SearchExecutor
from nlquery.retrieval.types import SearchResult

logger = structlog.get_logger()


@dataclass(frozen=True)
class QueryOutcome:
    query: str
    dsl: str
    results: list[SearchResult]
    total: int


class QueryPipeline:
    def __init__(self, converter: QueryConversionService, executor: SearchExecutor, index: str) -> None:
        self.converter = converter
        self.executor = executor
        self.index = index

    async def run(self, text: str) -> QueryOutcome:
        """Run one query end to end. Conversion and search errors propagate to the caller."""
        logger.info("query_convert_start", query_length=len(text))
        dsl = await self.converter.convert_to_dsl(text)
        logger.debug("query_dsl_generated", dsl=dsl)

        logger.info("query_search_start", index=self.index)
        hits = await self.executor.search(dsl, self.index)
        results = map_hits(hits.hits)

        logger.info("query_complete", results=len(results), total=hits.total)
        return QueryOutcome(query=text, dsl=dsl, results=results, total=hits.total)
