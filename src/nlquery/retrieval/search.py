"""Execute query DSL documents against Elasticsearch."""

from __future__ import annotations

import json
from typing import Any

import structlog
from elasticsearch import ApiError, AsyncElasticsearch, TransportError

from nlquery.common.config import Settings
from nlquery.common.errors import ClientInitializationError, SearchExecutionError
from nlquery.retrieval.types import RawHit, SearchHits

logger = structlog.get_logger()


def create_search_client(settings: Settings) -> AsyncElasticsearch:
    """Build the async Elasticsearch client from settings."""
    kwargs: dict[str, Any] = {
        "hosts": [settings.elasticsearch_url],
        "request_timeout": settings.request_timeout,
    }
    if settings.elasticsearch_api_key:
        kwargs["api_key"] = settings.elasticsearch_api_key
    try:
        client = AsyncElasticsearch(**kwargs)
    except (ValueError, TypeError) as exc:
        raise ClientInitializationError(
            f"Elasticsearch client initialization failed for {settings.elasticsearch_url!r}: {exc}"
        ) from exc
    logger.info("elasticsearch_client_initialized", url=settings.elasticsearch_url)
    return client


def _paging_value(document: dict, key: str) -> int:
    try:
        return int(document[key])
    except (TypeError, ValueError) as exc:
        raise SearchExecutionError(f"Query document field {key!r} must be an integer") from exc


class SearchExecutionService:
    def __init__(self, client: AsyncElasticsearch) -> None:
        self.client = client

    async def search(self, dsl: str, index: str) -> SearchHits:
        """Run a query DSL document (``query``, ``size``, ``from``) against an index."""
        try:
            document = json.loads(dsl)
        except json.JSONDecodeError as exc:
            raise SearchExecutionError(f"Query document is not valid JSON: {exc.msg}") from exc
        if not isinstance(document, dict):
            raise SearchExecutionError("Query document must be a JSON object")

        kwargs: dict[str, Any] = {"index": index}
        if "query" in document:
            kwargs["query"] = document["query"]
        if "size" in document:
            kwargs["size"] = _paging_value(document, "size")
        if "from" in document:
            kwargs["from_"] = _paging_value(document, "from")

        try:
            response = await self.client.search(**kwargs)
        except (ApiError, TransportError) as exc:
            logger.exception("search_es_error", index=index)
            raise SearchExecutionError(f"Search execution failed on index {index!r}: {exc}") from exc

        # A response without a hits section means no hits
        try:
            hits_section = (response["hits"] if "hits" in response else None) or {}
            hits = [RawHit.from_es_hit(hit) for hit in hits_section.get("hits") or []]
            total = hits_section.get("total")
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            logger.error("search_response_malformed", index=index, error=str(exc))
            raise SearchExecutionError(f"Malformed search response from index {index!r}: {exc}") from exc

        if isinstance(total, dict):
            total = total.get("value")
        if not isinstance(total, int):
            total = len(hits)

        logger.info("search_executed", index=index, results=len(hits), total=total)
        return SearchHits(hits=hits, total=total)

    async def close(self) -> None:
        await self.client.close()
