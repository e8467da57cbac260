"""Query conversion service: picks a converter once and canonicalizes its output."""

from __future__ import annotations

import enum
import json

import structlog

from nlquery.common.config import Settings
from nlquery.common.errors import ConversionError, ConversionFailedError
from nlquery.common.llm.bedrock import BedrockRuntimeClient
from nlquery.common.logging import CostTracker
from nlquery.query.model_converter import ModelConverter
from nlquery.query.pattern_converter import PatternConverter

logger = structlog.get_logger()


class ConversionStrategy(enum.Enum):
    PATTERN_BASED = "pattern"
    MODEL_BASED = "model"

    @classmethod
    def from_settings(cls, settings: Settings) -> ConversionStrategy:
        if settings.use_llm_conversion and settings.bedrock_model_id:
            return cls.MODEL_BASED
        return cls.PATTERN_BASED


class QueryConversionService:
    """Converts natural language to pretty-printed query DSL JSON.

    The strategy is resolved at construction and fixed for the lifetime of
    the service. Converters may be injected; otherwise they are built from
    settings.
    """

    def __init__(
        self,
        settings: Settings,
        pattern_converter: PatternConverter | None = None,
        model_converter: ModelConverter | None = None,
        cost_tracker: CostTracker | None = None,
    ) -> None:
        self.strategy = ConversionStrategy.from_settings(settings)
        self._pattern_converter: PatternConverter | None = None
        self._model_converter: ModelConverter | None = None

        if self.strategy is ConversionStrategy.MODEL_BASED:
            self._model_converter = model_converter or ModelConverter(
                BedrockRuntimeClient(
                    region=settings.effective_bedrock_region,
                    timeout=settings.bedrock_timeout,
                    max_attempts=settings.bedrock_max_attempts,
                    endpoint_url=settings.bedrock_endpoint_url or None,
                ),
                model_id=settings.bedrock_model_id,
                cost_tracker=cost_tracker,
            )
            logger.info("query_conversion_strategy", strategy=self.strategy.value, model_id=settings.bedrock_model_id)
        else:
            self._pattern_converter = pattern_converter or PatternConverter(default_field=settings.default_field)
            logger.info("query_conversion_strategy", strategy=self.strategy.value)

    async def convert_to_dsl(self, text: str) -> str:
        """Convert text and return the query document as canonical, indented JSON.

        Raises:
            ConversionError: the model converter failed (propagated unchanged).
            ConversionFailedError: the converter output is not a standard JSON object.
        """
        try:
            if self.strategy is ConversionStrategy.MODEL_BASED:
                raw = await self._model_converter.convert(text)
            else:
                raw = self._pattern_converter.convert(text).to_json()
            document = json.loads(raw)
            if not isinstance(document, dict):
                raise TypeError(f"expected a JSON object, got {type(document).__name__}")
            return json.dumps(document, indent=2, allow_nan=False)
        except ConversionError:
            raise
        except (ValueError, TypeError) as exc:
            logger.error("query_conversion_failed", strategy=self.strategy.value, error=str(exc))
            raise ConversionFailedError(f"Query conversion failed: {exc}") from exc
