"""Rule-based conversion of natural language into a structured query.

Handles the common "find X where Y" phrasing without a model call. The
converter never raises: anything unexpected degrades to a
``query_string`` query wrapping the raw input.
"""

from __future__ import annotations

import math
import re
from typing import Any

import structlog

from nlquery.query.models import (
    ALL_FIELDS,
    DEFAULT_SIZE,
    Bool,
    Match,
    QueryExpression,
    QueryString,
    Range,
    StructuredQuery,
    Term,
)

logger = structlog.get_logger()

MATCH_ALL_PLACEHOLDER = "*"

# Longest phrases first so "find all" wins over "find"
LEAD_IN_PHRASES = ("find all", "search for", "show me", "find", "search", "list", "get")

_LEAD_IN = re.compile(r"^(?:" + "|".join(re.escape(p) for p in LEAD_IN_PHRASES) + r")(?:\s+|$)")
_TRAILING_CLAUSE = re.compile(r"\s+\b(?:where|with|that|having)\s+(?P<clause>.+)$", re.IGNORECASE)
_FILTER_KEYWORDS = re.compile(r"\b(?:where|with|that|having)\b", re.IGNORECASE)
_RANGE_KEYWORDS = re.compile(r"\b(?:between|from|after|before|greater than|less than)\b|>=|<=|[<>]", re.IGNORECASE)

_BETWEEN = re.compile(
    r"(?P<field>[A-Za-z_][\w.]*)\s+(?:is\s+)?between\s+(?P<low>\S+)\s+and\s+(?P<high>\S+)",
    re.IGNORECASE,
)
_CONDITION_SEPARATOR = re.compile(r"\s*(?:,|\band\b)\s*", re.IGNORECASE)
_COMPARISON = re.compile(
    r"^(?P<field>[A-Za-z_][\w.]*)\s*(?:is\s+)?"
    r"(?P<op>>=|<=|>|<|=|(?:greater than|less than|after|before|is)\b)\s*(?P<value>.+)$",
    re.IGNORECASE,
)

_RANGE_OPERATORS = {
    ">": "gt",
    "greater than": "gt",
    "after": "gt",
    ">=": "gte",
    "<": "lt",
    "less than": "lt",
    "before": "lt",
    "<=": "lte",
}


def _coerce(value: str) -> Any:
    value = value.strip().strip("'\"")
    try:
        return int(value)
    except ValueError:
        pass
    try:
        number = float(value)
    except ValueError:
        return value
    # nan/inf have no JSON encoding
    return number if math.isfinite(number) else value


class PatternConverter:
    def __init__(self, default_field: str = ALL_FIELDS, size: int = DEFAULT_SIZE) -> None:
        self.default_field = default_field
        self.size = size

    def convert(self, text: str) -> StructuredQuery:
        """Convert natural language text to a StructuredQuery, falling back on any error."""
        try:
            query = self._convert(text)
        except Exception:
            logger.exception("pattern_conversion_failed")
            return self._fallback(text)
        logger.debug("pattern_conversion", query_length=len(text))
        return query

    def _convert(self, text: str) -> StructuredQuery:
        cleaned = text.strip()
        match_text = self.extract_search_terms(cleaned)

        bool_query = Bool(
            must=[Match(field=self.default_field, text=match_text, operator="and")],
            filter=self.build_filters(cleaned) if self.has_filters(cleaned) else [],
        )
        return StructuredQuery(query=bool_query, size=self.size)

    def _fallback(self, text: Any) -> StructuredQuery:
        raw = text if isinstance(text, str) else str(text)
        return StructuredQuery(query=QueryString(text=raw, default_field=self.default_field), size=self.size)

    @staticmethod
    def extract_search_terms(text: str) -> str:
        """Strip one lead-in phrase and the trailing filter clause."""
        terms = _LEAD_IN.sub("", text, count=1)
        terms = _TRAILING_CLAUSE.sub("", terms, count=1).strip()
        return terms or MATCH_ALL_PLACEHOLDER

    @staticmethod
    def has_filters(text: str) -> bool:
        return bool(_FILTER_KEYWORDS.search(text) or _RANGE_KEYWORDS.search(text))

    def build_filters(self, text: str) -> list[QueryExpression]:
        """Extract simple ``<field> <op> <value>`` conditions from the trailing clause.

        Conditions that do not fit the pattern are skipped, so a detected but
        unparseable clause yields no filter at all.
        """
        clause_match = _TRAILING_CLAUSE.search(_LEAD_IN.sub("", text, count=1))
        if not clause_match:
            return []
        clause = clause_match.group("clause")

        filters: list[QueryExpression] = []
        for between in _BETWEEN.finditer(clause):
            filters.append(
                Range(
                    field=between.group("field"),
                    bounds={"gte": _coerce(between.group("low")), "lte": _coerce(between.group("high"))},
                )
            )
        clause = _BETWEEN.sub("", clause)

        for condition in _CONDITION_SEPARATOR.split(clause):
            parsed = _COMPARISON.match(condition.strip())
            if not parsed:
                continue
            field = parsed.group("field")
            op = parsed.group("op").lower()
            value = _coerce(parsed.group("value"))
            if op in ("=", "is"):
                filters.append(Term(field=field, value=value))
            else:
                filters.append(Range(field=field, bounds={_RANGE_OPERATORS[op]: value}))

        if not filters:
            logger.debug("pattern_filters_unparsed", clause_length=len(clause))
        return filters
