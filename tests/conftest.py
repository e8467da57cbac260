"""Shared test fixtures for the nlquery test suite."""

import json
import os
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from botocore.credentials import Credentials

from nlquery.common.config import Settings, reset_settings
from nlquery.common.llm.bedrock import BedrockRuntimeClient


@pytest.fixture(autouse=True)
def _isolated_settings():
    """Keep the cached Settings from leaking between tests."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    """Settings with the search endpoint set and no .env file."""
    with patch.dict(os.environ, {}, clear=True):
        return Settings(_env_file=None, elasticsearch_url="http://localhost:9200")


@pytest.fixture
def mock_es_client():
    """Mock async Elasticsearch client."""
    client = AsyncMock()
    client.search = AsyncMock(return_value={"hits": {"total": {"value": 0, "relation": "eq"}, "hits": []}})
    client.close = AsyncMock()
    return client


@pytest.fixture
def aws_credentials():
    return Credentials("AKIDEXAMPLE", "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY")


def _bedrock_body(text: str | None = None, content: list | None = None, usage: dict | None = None) -> dict:
    if content is None:
        content = [{"type": "text", "text": text}]
    body: dict = {"id": "msg_01", "type": "message", "role": "assistant", "content": content}
    if usage is not None:
        body["usage"] = usage
    return body


@pytest.fixture
def bedrock_body():
    """Build a Bedrock Anthropic invoke response body."""
    return _bedrock_body


@pytest.fixture
def make_bedrock_client(aws_credentials):
    """Factory for a BedrockRuntimeClient whose HTTP traffic goes to a handler."""

    def _make(handler, **kwargs) -> BedrockRuntimeClient:
        kwargs.setdefault("retry_backoff", 0)
        return BedrockRuntimeClient(
            region="us-east-1",
            credentials=aws_credentials,
            transport=httpx.MockTransport(handler),
            **kwargs,
        )

    return _make


@pytest.fixture
def respond_with():
    """Build a MockTransport handler returning a fixed status and JSON body."""

    def _respond(body, status_code: int = 200):
        def handler(request: httpx.Request) -> httpx.Response:
            if isinstance(body, str):
                return httpx.Response(status_code, text=body)
            return httpx.Response(status_code, content=json.dumps(body).encode())

        return handler

    return _respond
