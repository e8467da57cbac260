"""Structured logging with structlog, correlation IDs, and cost tracking."""

import logging
import sys
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field

import structlog

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    return correlation_id_var.get()


def set_correlation_id(cid: str | None = None) -> str:
    cid = cid or uuid.uuid4().hex[:16]
    correlation_id_var.set(cid)
    return cid


def add_correlation_id(logger: structlog.types.WrappedLogger, method_name: str, event_dict: dict) -> dict:
    cid = correlation_id_var.get()
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def configure_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Configure structlog to write to stderr, leaving stdout for query results."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            add_correlation_id,  # type: ignore[list-item]
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


@dataclass
class CostTracker:
    """Tracks model token usage and estimated cost across query conversions."""

    calls: list[dict] = field(default_factory=list)

    def log_llm_call(
        self,
        model: str,
        input_tokens: int,
        output_tokens: int,
        latency_ms: float,
    ) -> None:
        cost = self._estimate_cost(model, input_tokens, output_tokens)
        call_info = {
            "model": model,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "latency_ms": round(latency_ms, 1),
            "estimated_cost_usd": round(cost, 6),
        }
        self.calls.append(call_info)
        log = structlog.get_logger()
        log.info("llm_call", **call_info)

    @property
    def total_cost(self) -> float:
        return float(sum(c.get("estimated_cost_usd", 0) for c in self.calls))

    @property
    def total_tokens(self) -> int:
        return sum(c.get("input_tokens", 0) + c.get("output_tokens", 0) for c in self.calls)

    @staticmethod
    def _estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
        # Approximate Bedrock on-demand pricing per 1M tokens
        pricing = {
            "anthropic.claude-3-sonnet-20240229-v1:0": {"input": 3.0, "output": 15.0},
            "anthropic.claude-3-haiku-20240307-v1:0": {"input": 0.25, "output": 1.25},
        }
        # Default to sonnet pricing
        rates = pricing.get(model, pricing["anthropic.claude-3-sonnet-20240229-v1:0"])
        return (input_tokens * rates["input"] + output_tokens * rates["output"]) / 1_000_000
