"""Plain-text rendering of query outcomes and errors for the command line."""

from __future__ import annotations

import json
import sys
from typing import TextIO

from nlquery.common.errors import NLQueryError
from nlquery.pipeline import QueryOutcome


class ResultPresenter:
    """Prints query outcomes, showing at most ``max_display`` results.

    Truncation applies to the display only; the outcome keeps every result.
    """

    def __init__(self, max_display: int = 10, stream: TextIO | None = None, err_stream: TextIO | None = None) -> None:
        self.max_display = max_display
        self.stream = stream or sys.stdout
        self.err_stream = err_stream or sys.stderr

    def _print(self, line: str = "") -> None:
        print(line, file=self.stream)

    def render(self, outcome: QueryOutcome) -> None:
        self._print("Generated query DSL:")
        self._print(outcome.dsl)
        self._print(f"Total hits: {outcome.total}")

        if not outcome.results:
            self._print("No results found.")
            return

        shown = outcome.results[: self.max_display]
        self._print(f"Displaying {len(shown)} of {len(outcome.results)} results")
        for i, result in enumerate(shown, start=1):
            score = "n/a" if result.score is None else f"{result.score:.4f}"
            self._print(f"--- Result {i} ---")
            self._print(f"Score: {score}")
            self._print(f"ID: {result.id}")
            self._print(f"Source: {json.dumps(result.source, default=str, ensure_ascii=False)}")

    def render_error(self, exc: BaseException) -> None:
        phase = exc.phase if isinstance(exc, NLQueryError) else "query"
        print(f"Error during {phase}: {exc}", file=self.err_stream)
        if exc.__cause__ is not None:
            print(f"  Caused by {type(exc.__cause__).__name__}: {exc.__cause__}", file=self.err_stream)
