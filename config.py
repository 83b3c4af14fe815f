"""Configuration settings for the effort estimation engine."""

# Load .env into os.environ so provider fallbacks (e.g. OPENAI_API_KEY) work
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List


class Settings(BaseSettings):
    """Global settings for the effort engine.

    Settings can be overridden via environment variables with EFFORT_ENGINE_ prefix.
    Example: EFFORT_ENGINE_DEPENDENCY_BUFFER_PERCENT=15
    """

    # Model config
    default_model: str = Field(
        default="gpt-4o",
        description="Model used for both decomposition and estimation calls"
    )
    default_provider: str = Field(
        default="openai",
        description="Provider name passed to get_provider (openai, anthropic, litellm)"
    )
    decompose_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Temperature for the task decomposition phase"
    )
    estimate_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Temperature for the task estimation phase"
    )
    max_tokens_per_call: int = Field(
        default=1000,
        description="Maximum completion tokens per LLM call"
    )

    # API settings (env: EFFORT_ENGINE_<KEY> or standard env var)
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key (env: EFFORT_ENGINE_OPENAI_API_KEY)",
    )
    anthropic_api_key: str = Field(
        default="",
        description="Anthropic API key (env: EFFORT_ENGINE_ANTHROPIC_API_KEY)",
    )
    api_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout for every completion call; a timeout fails the phase"
    )

    # Input gates
    min_title_length: int = Field(
        default=5,
        description="Titles shorter than this are rejected with InvalidInput"
    )
    min_description_length: int = Field(
        default=20,
        description="Descriptions shorter than this yield an insufficient_description result"
    )

    # Scheduling
    dependency_buffer_percent: float = Field(
        default=10.0,
        ge=0.0,
        description="Buffer percentage points added per incomplete prerequisite"
    )
    closed_statuses: List[str] = Field(
        default_factory=lambda: ["Done", "Closed", "Completed"],
        description="Statuses that mark a prerequisite as complete"
    )
    max_hierarchy_depth: int = Field(
        default=10,
        ge=1,
        description="Maximum levels walked when resolving ancestors or descendants"
    )

    # Storage
    database_url: str = Field(
        default="sqlite:///effort_engine.db",
        description="SQLAlchemy URL for the work item store; memory:// selects the in-memory store"
    )

    model_config = {
        "env_prefix": "EFFORT_ENGINE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",  # ignore extra env vars (e.g. OPENAI_API_KEY) not in schema
    }


# Create singleton instance
settings = Settings()
