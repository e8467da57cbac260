"""Map raw engine hits into normalized search results."""

from collections.abc import Iterable

from nlquery.retrieval.types import RawHit, SearchResult


def map_hits(hits: Iterable[RawHit]) -> list[SearchResult]:
    """Convert hits to SearchResults in engine order, without re-sorting or filtering."""
    return [SearchResult(id=hit.id, score=hit.score, source=dict(hit.source)) for hit in hits]
