"""Model-based conversion of natural language into query DSL via AWS Bedrock."""

from __future__ import annotations

import json
import time

import structlog
from pydantic import BaseModel, ValidationError

from nlquery.common.errors import EmptyResponseError, InvalidResponseError, ModelInvocationError
from nlquery.common.llm.bedrock import BedrockRuntimeClient
from nlquery.common.logging import CostTracker

logger = structlog.get_logger()

ANTHROPIC_VERSION = "bedrock-2023-05-31"
MAX_TOKENS = 1000
TEMPERATURE = 0.1  # Low temperature for deterministic query output

SYSTEM_PROMPT = """\
You are an expert at converting natural language queries into Elasticsearch query DSL.

Your task is to convert user queries into valid Elasticsearch query JSON.

Rules:
1. Return ONLY valid JSON in Elasticsearch query DSL format
2. Use appropriate query types (match, match_phrase, term, terms, range, bool)
3. For text searches, prefer 'match' or 'match_phrase' queries
4. For exact matches, use 'term' or 'terms' queries
5. For date/number ranges, use 'range' queries
6. Combine multiple conditions using a 'bool' query with 'must', 'should', 'must_not', 'filter'
7. Always include a 'size' parameter (default: 10)
8. Do not include any explanations, prose or markdown code fences, only the JSON

Example output format:
{
  "query": {
    "bool": {
      "must": [
        {
          "match": {
            "_all": {
              "query": "search terms",
              "operator": "and"
            }
          }
        }
      ]
    }
  },
  "size": 10
}
"""

USER_PROMPT_TEMPLATE = "Convert the following natural language query to Elasticsearch query DSL:\n\n{query}"


class ContentBlock(BaseModel):
    type: str = "text"
    text: str | None = None


class Usage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class InvokeResponse(BaseModel):
    """The subset of a Bedrock Anthropic invoke response that conversion relies on."""

    content: list[ContentBlock] | None = None
    usage: Usage | None = None


def build_payload(text: str) -> dict:
    return {
        "anthropic_version": ANTHROPIC_VERSION,
        "system": SYSTEM_PROMPT,
        "messages": [{"role": "user", "content": USER_PROMPT_TEMPLATE.format(query=text)}],
        "max_tokens": MAX_TOKENS,
        "temperature": TEMPERATURE,
    }


def strip_code_fences(content: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence, independently."""
    content = content.strip()
    if content.startswith("```json"):
        content = content[len("```json"):]
    elif content.startswith("```"):
        content = content[len("```"):]
    if content.endswith("```"):
        content = content[: -len("```")]
    return content.strip()


def extract_text(body: str) -> tuple[str, Usage | None]:
    """Parse an invoke response body and return the first content block's text."""
    try:
        response = InvokeResponse.model_validate_json(body)
    except ValidationError as exc:
        raise InvalidResponseError("Bedrock response body is not a valid invoke response") from exc

    if not response.content:
        raise EmptyResponseError("Empty response from Bedrock: no content blocks")
    text = response.content[0].text
    if text is None or not text.strip():
        raise EmptyResponseError("Empty response from Bedrock: first content block has no text")
    return text, response.usage


class ModelConverter:
    def __init__(
        self,
        client: BedrockRuntimeClient,
        model_id: str,
        cost_tracker: CostTracker | None = None,
    ) -> None:
        self._client = client
        self._model_id = model_id
        self._cost_tracker = cost_tracker
        logger.info("bedrock_converter_initialized", model_id=model_id, region=client.region)

    @property
    def model_id(self) -> str:
        return self._model_id

    async def convert(self, text: str) -> str:
        """Convert natural language text to a query DSL JSON string.

        The cleaned model output is returned as-is once it parses as JSON.

        Raises:
            ModelInvocationError: the call failed or returned a non-200 status.
            EmptyResponseError: the response carried no text.
            InvalidResponseError: the response or its text is not valid JSON.
        """
        start = time.perf_counter()
        response = await self._client.invoke(self._model_id, build_payload(text))
        latency_ms = (time.perf_counter() - start) * 1000

        if response.status_code != 200:
            logger.error("model_conversion_http_error", status_code=response.status_code)
            raise ModelInvocationError(f"Bedrock API error: {response.status_code} - {response.text[:500]}")

        content, usage = extract_text(response.text)
        if self._cost_tracker and usage:
            self._cost_tracker.log_llm_call(self._model_id, usage.input_tokens, usage.output_tokens, latency_ms)

        content = strip_code_fences(content)
        try:
            json.loads(content)
        except json.JSONDecodeError as exc:
            logger.warning("model_conversion_invalid_json", content_length=len(content))
            raise InvalidResponseError(f"Model output is not valid JSON: {exc.msg}") from exc

        logger.info("model_conversion", model_id=self._model_id, latency_ms=round(latency_ms, 1))
        return content
