"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RESTRICTED_TERMS: tuple[str, ...] = (
    "badword",
    "inappropriate",
    "unsafe_topic",
    "moovit",
    "other applications",
)


class AgentConfig(BaseModel):
    """Agent loop configuration."""

    model_config = ConfigDict(populate_by_name=True)

    model: str = "perplexity/sonar"
    max_tokens: int = Field(default=1024, alias="maxTokens")
    temperature: float = 0.7
    request_timeout_s: float = Field(default=30.0, alias="requestTimeoutS")
    max_attempts: int = Field(default=3, alias="maxAttempts")  # First completion only
    retry_base_delay_s: float = Field(default=1.0, alias="retryBaseDelayS")
    include_history: bool = Field(default=True, alias="includeHistory")
    timezone: str = "Asia/Kolkata"  # Used for prompt timestamps and arrival times


class SessionConfig(BaseModel):
    """Per-user session store configuration."""

    model_config = ConfigDict(populate_by_name=True)

    max_age_s: float = Field(default=30 * 60, alias="maxAgeS")
    max_history: int = Field(default=20, alias="maxHistory")
    max_exchanges: int = Field(default=10, alias="maxExchanges")
    max_searches: int = Field(default=10, alias="maxSearches")
    max_prompt_tokens: int = Field(default=8000, alias="maxPromptTokens")
    sweep_interval_s: float = Field(default=10 * 60, alias="sweepIntervalS")
    token_estimator: str = Field(default="heuristic", alias="tokenEstimator")  # or "tiktoken"


class GuardrailsConfig(BaseModel):
    """Query denylist configuration."""

    model_config = ConfigDict(populate_by_name=True)

    restricted_terms: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RESTRICTED_TERMS), alias="restrictedTerms"
    )


class ProviderConfig(BaseModel):
    """LLM provider configuration."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(default="", alias="apiKey")
    api_base: str | None = Field(default=None, alias="apiBase")


class ProvidersConfig(BaseModel):
    """Configuration for LLM providers."""

    perplexity: ProviderConfig = Field(default_factory=ProviderConfig)
    openrouter: ProviderConfig = Field(default_factory=ProviderConfig)
    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)


class GatewayConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 3000


class Config(BaseSettings):
    """Root configuration for transitbot."""

    model_config = SettingsConfigDict(
        env_prefix="TRANSITBOT_",
        env_nested_delimiter="__",
        populate_by_name=True,
    )

    agent: AgentConfig = Field(default_factory=AgentConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    guardrails: GuardrailsConfig = Field(default_factory=GuardrailsConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    snapshot_path: str | None = Field(default=None, alias="snapshotPath")
    error_log_path: str | None = Field(default=None, alias="errorLogPath")

    @property
    def snapshot_file(self) -> Path | None:
        """Get expanded snapshot file path, if configured."""
        if not self.snapshot_path:
            return None
        return Path(self.snapshot_path).expanduser()

    def get_api_key(self) -> str | None:
        """Get API key in priority order: Perplexity > OpenRouter > OpenAI > Anthropic."""
        return (
            self.providers.perplexity.api_key
            or self.providers.openrouter.api_key
            or self.providers.openai.api_key
            or self.providers.anthropic.api_key
            or None
        )

    def get_api_base(self) -> str | None:
        """Get API base URL for the provider whose key is in use."""
        if self.providers.perplexity.api_key:
            return self.providers.perplexity.api_base
        if self.providers.openrouter.api_key:
            return self.providers.openrouter.api_base or "https://openrouter.ai/api/v1"
        if self.providers.openai.api_key:
            return self.providers.openai.api_base
        return self.providers.anthropic.api_base
