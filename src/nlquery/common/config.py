"""Application configuration via environment variables and an optional .env file."""

from pydantic import Field
from pydantic_settings import BaseSettings

from nlquery.common.errors import ConfigurationError

DEFAULT_BEDROCK_MODEL_ID = "anthropic.claude-3-sonnet-20240229-v1:0"


class Settings(BaseSettings):
    # Elasticsearch
    elasticsearch_url: str = ""  # Required; no sensible default for a remote cluster
    elasticsearch_index: str = "documents"
    elasticsearch_api_key: str = ""
    max_results: int = Field(default=10, ge=1)  # Max results displayed per query
    request_timeout: float = Field(default=10.0, gt=0)  # Seconds

    # Query conversion
    use_llm_conversion: bool = False  # Feature flag, rule-based conversion by default
    default_field: str = "_all"

    # AWS Bedrock (model-based conversion)
    aws_region: str = "us-east-1"
    bedrock_model_id: str = DEFAULT_BEDROCK_MODEL_ID
    bedrock_region: str = ""  # Empty = use aws_region
    bedrock_endpoint_url: str = ""  # Empty = https://bedrock-runtime.<region>.amazonaws.com
    bedrock_timeout: float = Field(default=30.0, gt=0)
    bedrock_max_attempts: int = Field(default=3, ge=1)

    # App
    log_level: str = "INFO"
    log_format: str = "console"  # console | json

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def effective_bedrock_region(self) -> str:
        return self.bedrock_region or self.aws_region

    def require_search_endpoint(self) -> None:
        """Raise if the search engine endpoint is unset."""
        if not self.elasticsearch_url.strip():
            raise ConfigurationError(
                "ELASTICSEARCH_URL must be set in the environment or the .env file."
            )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the cached Settings instance, creating it on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached Settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None


def load_settings() -> Settings:
    """Load and validate settings, failing fast on missing required values."""
    try:
        settings = get_settings()
    except ValueError as exc:
        # pydantic ValidationError is a ValueError subclass
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
    settings.require_search_endpoint()
    return settings
