"""Tests for the nlquery command-line entry point."""

import io
from unittest.mock import AsyncMock, patch

import pytest
from elasticsearch import ConnectionError as ESConnectionError

from nlquery.cli import build_parser, main, run, run_interactive
from nlquery.common.errors import ClientInitializationError, ConfigurationError
from nlquery.pipeline import QueryPipeline
from nlquery.presentation import ResultPresenter
from nlquery.query.service import QueryConversionService
from nlquery.retrieval.search import SearchExecutionService

ES_HITS = {
    "hits": {
        "total": {"value": 2, "relation": "eq"},
        "hits": [
            {"_id": "2", "_score": 0.9, "_source": {"name": "b"}},
            {"_id": "1", "_score": 0.5, "_source": {"name": "a"}},
        ],
    }
}


@pytest.fixture
def presenter():
    return ResultPresenter(stream=io.StringIO(), err_stream=io.StringIO())


@pytest.fixture
def cli_env(settings, mock_es_client):
    """Patch startup collaborators so run() uses test settings and a mock ES client."""
    mock_es_client.search = AsyncMock(return_value=ES_HITS)
    with (
        patch("nlquery.cli.load_settings", return_value=settings) as load,
        patch("nlquery.cli.create_search_client", return_value=mock_es_client) as create,
        patch("nlquery.cli.configure_logging"),
    ):
        yield load, create


def _lines(*lines):
    feed = iter(lines)

    def read_line(prompt: str) -> str:
        try:
            return next(feed)
        except StopIteration:
            raise EOFError from None

    return read_line


class TestParser:
    def test_no_arguments(self):
        assert build_parser().parse_args([]).query == []

    def test_words_collected(self):
        assert build_parser().parse_args(["find", "all", "users"]).query == ["find", "all", "users"]


class TestSingleShot:
    async def test_success(self, cli_env, mock_es_client, presenter):
        code = await run(["find", "all", "users"], presenter=presenter)

        assert code == 0
        query = mock_es_client.search.call_args.kwargs["query"]
        assert query["bool"]["must"][0]["match"]["_all"]["query"] == "users"
        output = presenter.stream.getvalue()
        assert "Total hits: 2" in output
        assert output.index("ID: 2") < output.index("ID: 1")
        mock_es_client.close.assert_awaited_once()

    async def test_max_results_applied(self, cli_env, settings, presenter):
        settings.max_results = 1
        await run(["list", "people"], presenter=presenter)
        assert "Displaying 1 of 2 results" in presenter.stream.getvalue()

    async def test_query_failure_exits_nonzero(self, cli_env, mock_es_client, presenter):
        mock_es_client.search = AsyncMock(side_effect=ESConnectionError("connection refused"))

        code = await run(["show", "me", "documents"], presenter=presenter)

        assert code == 1
        assert "Error during search" in presenter.err_stream.getvalue()
        mock_es_client.close.assert_awaited_once()

    async def test_configuration_error_exits(self, cli_env, presenter):
        load, create = cli_env
        load.side_effect = ConfigurationError("ELASTICSEARCH_URL must be set")

        code = await run(["anything"], presenter=presenter)

        assert code == 1
        create.assert_not_called()
        assert "Error during configuration: ELASTICSEARCH_URL must be set" in presenter.err_stream.getvalue()

    async def test_client_initialization_error_exits(self, cli_env, presenter):
        _, create = cli_env
        create.side_effect = ClientInitializationError("bad url")

        code = await run(["anything"], presenter=presenter)

        assert code == 1
        assert "Error during startup: bad url" in presenter.err_stream.getvalue()

    def test_main_runs_event_loop(self, cli_env, mock_es_client):
        with patch("nlquery.presentation.sys.stdout", new_callable=io.StringIO) as out:
            assert main(["show", "me", "documents"]) == 0
        assert "Total hits: 2" in out.getvalue()

    async def test_unexpected_error_exits_nonzero(self, cli_env, mock_es_client, presenter):
        mock_es_client.search = AsyncMock(side_effect=RuntimeError("boom"))

        code = await run(["show", "me", "documents"], presenter=presenter)

        assert code == 1
        assert "Error during query: boom" in presenter.err_stream.getvalue()
        mock_es_client.close.assert_awaited_once()

    def test_main_interrupted(self):
        with patch("nlquery.cli.run", new=AsyncMock(side_effect=KeyboardInterrupt)):
            assert main([]) == 130


class TestInteractive:
    @pytest.fixture
    def pipeline(self, settings, mock_es_client):
        mock_es_client.search = AsyncMock(return_value=ES_HITS)
        return QueryPipeline(
            QueryConversionService(settings), SearchExecutionService(mock_es_client), index="documents"
        )

    async def test_reads_until_exit(self, pipeline, presenter, mock_es_client):
        code = await run_interactive(pipeline, presenter, read_line=_lines("list users", "", "  ", "EXIT", "ignored"))

        assert code == 0
        assert mock_es_client.search.await_count == 1

    @pytest.mark.parametrize("word", ["quit", "Quit", "exit", " exit "])
    async def test_exit_words(self, pipeline, presenter, mock_es_client, word):
        await run_interactive(pipeline, presenter, read_line=_lines(word, "list users"))
        mock_es_client.search.assert_not_called()

    async def test_eof_ends_loop(self, pipeline, presenter, mock_es_client):
        assert await run_interactive(pipeline, presenter, read_line=_lines("a", "b")) == 0
        assert mock_es_client.search.await_count == 2

    async def test_error_reported_and_loop_continues(self, pipeline, presenter, mock_es_client):
        mock_es_client.search = AsyncMock(side_effect=[ESConnectionError("connection refused"), ES_HITS])

        code = await run_interactive(pipeline, presenter, read_line=_lines("first", "second", "quit"))

        assert code == 0
        assert mock_es_client.search.await_count == 2
        assert "Error during search" in presenter.err_stream.getvalue()
        assert "Total hits: 2" in presenter.stream.getvalue()

    async def test_unexpected_error_reported_and_loop_continues(self, pipeline, presenter, mock_es_client):
        mock_es_client.search = AsyncMock(side_effect=[RuntimeError("boom"), ES_HITS])

        code = await run_interactive(pipeline, presenter, read_line=_lines("first", "second", "exit"))

        assert code == 0
        assert mock_es_client.search.await_count == 2
        assert "Error during query: boom" in presenter.err_stream.getvalue()
        assert "Total hits: 2" in presenter.stream.getvalue()

    async def test_empty_engine_response_does_not_end_loop(self, pipeline, presenter, mock_es_client):
        mock_es_client.search = AsyncMock(return_value={})

        code = await run_interactive(
            pipeline, presenter, read_line=_lines("show me documents", "show me documents", "exit")
        )

        assert code == 0
        assert mock_es_client.search.await_count == 2
        assert presenter.stream.getvalue().count("No results found.") == 2
        assert presenter.err_stream.getvalue() == ""

    async def test_interactive_via_run(self, cli_env, presenter, mock_es_client):
        with patch("builtins.input", side_effect=["list users", "exit"]):
            code = await run([], presenter=presenter)
        assert code == 0
        assert mock_es_client.search.await_count == 1
