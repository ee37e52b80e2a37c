"""
Application settings and configuration management.

Uses Pydantic Settings for validation and environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ProviderKey = Literal["google", "glm", "deepseek"]

# Fallback order when several providers have credentials configured
PROVIDER_PRIORITY: tuple[ProviderKey, ...] = ("google", "glm", "deepseek")


class ProviderSettings(BaseSettings):
    """
    Credentials, endpoints and default models for each supported provider.

    No env prefix: GOOGLE_API_KEY, GLM_API_KEY and DEEPSEEK_API_KEY are read
    from the process environment as-is. In a .env file use the nested form,
    e.g. PROVIDERS__GOOGLE_API_KEY.
    """

    google_api_key: str = Field(default="", description="Google AI Studio API key")
    google_endpoint: str | None = Field(
        default=None, description="Override for the Gemini API base URL"
    )
    google_model: str = Field(default="gemini-2.5-flash", description="Default Gemini model")

    glm_api_key: str = Field(default="", description="Zhipu GLM API key")
    glm_endpoint: str | None = Field(
        default="https://open.bigmodel.cn/api/paas/v4",
        description="GLM OpenAI-compatible endpoint",
    )
    glm_model: str = Field(default="glm-4.7", description="Default GLM model")

    deepseek_api_key: str = Field(default="", description="DeepSeek API key")
    deepseek_endpoint: str | None = Field(
        default=None, description="Override for the DeepSeek API base URL"
    )
    deepseek_model: str = Field(default="deepseek-chat", description="Default DeepSeek model")

    model_config = SettingsConfigDict(extra="ignore")

    def api_key_for(self, provider: ProviderKey) -> str:
        return getattr(self, f"{provider}_api_key")

    def endpoint_for(self, provider: ProviderKey) -> str | None:
        return getattr(self, f"{provider}_endpoint")

    def model_for(self, provider: ProviderKey) -> str:
        return getattr(self, f"{provider}_model")

    def configured_providers(self) -> list[ProviderKey]:
        """Providers with an API key, in fallback priority order."""
        return [p for p in PROVIDER_PRIORITY if self.api_key_for(p)]

    def model_provider_map(self) -> dict[str, ProviderKey]:
        """Map each provider's default model back to the provider (keys not required)."""
        return {self.model_for(p): p for p in PROVIDER_PRIORITY if self.model_for(p)}

    def fallback_models(self) -> list[str]:
        """Default models of every configured provider, google -> glm -> deepseek."""
        return [self.model_for(p) for p in self.configured_providers()]


class GatewaySettings(BaseSettings):
    """Model gateway configuration: routing, timeouts and retry policy."""

    default_model: str | None = Field(
        default=None,
        description="Model used when a request does not name one. "
                    "If unset, the first configured provider's model is used.",
    )
    fallback_models: list[str] | None = Field(
        default=None,
        description="Models tried in order after the requested one fails. "
                    "If unset, derived from configured providers. "
                    "Set via GATEWAY_FALLBACK_MODELS='[\"glm-4.7\"]'",
    )
    timeout_seconds: float | None = Field(
        default=None, description="Per-attempt timeout; the smaller of this and the request's wins"
    )
    max_retries: int = Field(default=2, ge=0, description="Extra attempts on retryable errors")
    backoff_seconds: float = Field(default=0.3, ge=0, description="Initial retry backoff")
    max_backoff_seconds: float = Field(default=2.0, ge=0, description="Backoff ceiling")
    jitter: float = Field(default=0.2, ge=0, le=1, description="Backoff jitter fraction")

    model_config = SettingsConfigDict(env_prefix="GATEWAY_")


class ContextSettings(BaseSettings):
    """Context store limits."""

    max_tokens: int = Field(default=8000, ge=0, description="Approximate token ceiling per request")
    max_messages: int = Field(default=50, ge=0, description="Message count ceiling per request")
    trim_strategy: Literal["keep_system_and_recent", "drop_oldest"] = Field(
        default="keep_system_and_recent", description="How to trim history over the limits"
    )

    model_config = SettingsConfigDict(env_prefix="CONTEXT_")


class AgentSettings(BaseSettings):
    """Defaults for agent runs and the tool loop."""

    max_tool_rounds: int = Field(default=5, ge=1, description="Tool rounds per run")
    temperature: float = Field(default=0.1, description="Sampling temperature for tool decisions")
    max_tokens: int = Field(default=500, description="Maximum tokens per chat response")
    write_summary_to_memory: bool = Field(
        default=False, description="Write a run summary into the session after each run"
    )

    model_config = SettingsConfigDict(env_prefix="AGENT_")


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Path | None = Field(default=None, description="Log file path")

    # Sub-configurations
    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    context: ContextSettings = Field(default_factory=ContextSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Loaded settings instance
    """
    global _settings
    if env_file:
        _settings = Settings(_env_file=env_file)
    else:
        _settings = Settings()
    return _settings
