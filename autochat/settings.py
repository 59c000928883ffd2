"""Settings configuration for the autochat service."""

from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings

# Load environment variables from .env file
load_dotenv()


class FeatureFlags(BaseModel):
    """Simple boolean feature flags via environment variables.

    Each flag maps to a FEATURE_FLAGS__<FLAG_NAME> environment variable.
    """

    enable_resumable_streams: bool = Field(
        default=True, description="Multiplex chat streams through Redis when available"
    )
    enable_title_generation: bool = Field(
        default=True, description="Ask the title model for new chat titles"
    )


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    # LLM Configuration (OpenAI-compatible)
    llm_provider: Literal["openrouter", "openai", "ollama"] = Field(
        default="openrouter", description="LLM provider to use"
    )

    llm_api_key: str = Field(..., description="API key for the LLM provider")

    llm_base_url: Optional[str] = Field(
        default="https://openrouter.ai/api/v1",
        description="Base URL for the LLM API (for OpenAI-compatible providers)",
    )

    # Provider model names behind the client-facing chat model ids
    chat_model_name: str = Field(
        default="anthropic/claude-sonnet-4.5", description="Model behind 'chat-model'"
    )
    reasoning_model_name: str = Field(
        default="deepseek/deepseek-r1", description="Model behind 'chat-model-reasoning'"
    )
    title_model_name: str = Field(
        default="openai/gpt-4o-mini", description="Model used to title new chats"
    )
    artifact_model_name: str = Field(
        default="anthropic/claude-sonnet-4.5", description="Model used by document tools"
    )

    # OpenRouter-Specific (Optional)
    openrouter_app_url: Optional[str] = Field(
        default=None, description="App URL for OpenRouter analytics (optional)"
    )
    openrouter_app_title: Optional[str] = Field(
        default=None, description="App title for OpenRouter tracking (optional)"
    )

    # Application Settings
    app_env: str = Field(default="development", description="Application environment")
    log_level: str = Field(default="INFO", description="Logging level")

    # Logfire (Optional)
    logfire_token: Optional[str] = Field(
        default=None, description="Logfire API token from 'logfire auth' (optional)"
    )
    logfire_service_name: str = Field(default="autochat", description="Service name in Logfire")
    logfire_environment: str = Field(
        default="development", description="Environment (development, production, etc.)"
    )

    # Database
    database_url: Optional[str] = Field(
        default=None, description="PostgreSQL connection URL (postgresql+asyncpg://...)"
    )
    database_pool_size: int = Field(default=5, ge=1, le=50)
    database_pool_overflow: int = Field(default=10, ge=0, le=100)

    # Redis (Optional - enables resumable streams)
    redis_url: Optional[str] = Field(
        default=None, description="Redis connection URL (redis://localhost:6379/0)"
    )
    redis_key_prefix: str = Field(default="autochat:", description="Redis key namespace prefix")
    resumable_stream_ttl_seconds: int = Field(
        default=600, ge=1, description="How long finished streams stay resumable"
    )
    resumable_stream_block_ms: int = Field(
        default=5000, ge=1, description="XREAD block timeout while waiting for new events"
    )

    # JWT Authentication
    jwt_secret_key: Optional[str] = Field(default=None, description="Secret key for JWT signing")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")

    # Remote web-automation agent
    automation_api_url: str = Field(
        default="http://localhost:4111", description="Base URL of the automation agent server"
    )
    automation_agent_name: str = Field(
        default="webAutomationAgent", description="Agent name on the automation server"
    )
    automation_temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    automation_max_steps: int = Field(default=10, ge=1)
    automation_timeout_seconds: float = Field(default=120.0, gt=0)

    # Generation
    request_timeout_seconds: float = Field(
        default=60.0, gt=0, description="Wall-clock budget for one chat generation"
    )
    delivery_queue_size: int = Field(
        default=1024,
        ge=1,
        description="Events buffered for a slow client before its stream is cut with an error",
    )

    # CORS
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"], description="CORS allowed origins"
    )

    # Feature Flags
    feature_flags: FeatureFlags = Field(
        default_factory=FeatureFlags, description="Platform feature toggles"
    )


def load_settings() -> Settings:
    """Load settings with proper error handling."""
    try:
        return Settings()
    except Exception as e:
        error_msg = f"Failed to load settings: {e}"
        if "llm_api_key" in str(e).lower():
            error_msg += "\nMake sure to set LLM_API_KEY in your .env file"
        raise ValueError(error_msg) from e
