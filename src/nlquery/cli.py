"""Command-line entry point: single-shot or interactive natural-language search.

Usage:
    nlquery                              # interactive, type 'exit' or 'quit' to leave
    nlquery find all users where age > 30

Ctrl-D ends the interactive session (exit code 0); Ctrl-C interrupts it (exit code 130).
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Callable, Sequence

import structlog

from nlquery.common.config import load_settings
from nlquery.common.errors import ClientInitializationError, ConfigurationError, NLQueryError
from nlquery.common.logging import CostTracker, configure_logging, set_correlation_id
from nlquery.pipeline import QueryPipeline
from nlquery.presentation import ResultPresenter
from nlquery.query.service import QueryConversionService
from nlquery.retrieval.search import SearchExecutionService, create_search_client

logger = structlog.get_logger()

EXIT_COMMANDS = frozenset({"exit", "quit"})
PROMPT = "Query: "
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nlquery",
        description="Search an Elasticsearch index with natural language queries.",
    )
    parser.add_argument(
        "query",
        nargs="*",
        help="Query words, joined with spaces. Omit to start the interactive prompt.",
    )
    return parser


async def run_once(pipeline: QueryPipeline, presenter: ResultPresenter, query: str) -> bool:
    """Run one query cycle and render it. Returns False if the query failed."""
    set_correlation_id()
    try:
        outcome = await pipeline.run(query)
    except NLQueryError as exc:
        logger.error("query_failed", phase=exc.phase, error=str(exc))
        presenter.render_error(exc)
        return False
    except Exception as exc:
        # Keep the interactive session alive on anything unforeseen
        logger.exception("query_failed_unexpectedly")
        presenter.render_error(exc)
        return False
    presenter.render(outcome)
    return True


async def run_interactive(
    pipeline: QueryPipeline,
    presenter: ResultPresenter,
    read_line: Callable[[str], str] | None = None,
) -> int:
    """Read queries one line at a time until exit/quit or end of input."""
    read_line = read_line or input
    print("Enter natural language queries (type 'exit' to quit)", file=presenter.stream)
    while True:
        try:
            line = await asyncio.to_thread(read_line, PROMPT)
        except EOFError:
            break

        query = line.strip()
        if not query:
            continue
        if query.lower() in EXIT_COMMANDS:
            logger.info("interactive_exit_requested")
            break
        await run_once(pipeline, presenter, query)

    logger.info("interactive_mode_ended")
    return 0


async def run(argv: Sequence[str] | None = None, presenter: ResultPresenter | None = None) -> int:
    args = build_parser().parse_args(argv)
    presenter = presenter or ResultPresenter()

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        presenter.render_error(exc)
        return 1

    configure_logging(settings.log_level, settings.log_format)
    presenter.max_display = settings.max_results

    try:
        client = create_search_client(settings)
    except ClientInitializationError as exc:
        logger.error("startup_failed", error=str(exc))
        presenter.render_error(exc)
        return 1

    executor = SearchExecutionService(client)
    try:
        converter = QueryConversionService(settings, cost_tracker=CostTracker())
        pipeline = QueryPipeline(converter, executor, index=settings.elasticsearch_index)

        if args.query:
            query = " ".join(args.query)
            return 0 if await run_once(pipeline, presenter, query) else 1
        return await run_interactive(pipeline, presenter)
    finally:
        await executor.close()


def main(argv: Sequence[str] | None = None) -> int:
    try:
        return asyncio.run(run(argv))
    except KeyboardInterrupt:
        # input() blocks in a worker thread, so Ctrl-C arrives here
        logger.info("interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    raise SystemExit(main())
