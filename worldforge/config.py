"""Configuration management for WorldForge."""

import os
from pathlib import Path

from dotenv import load_dotenv


# Load environment variables from .env file
def _find_env_file() -> Path | None:
    """Find the .env file, searching up the directory tree."""
    current = Path(__file__).parent
    for _ in range(4):
        env_path = current / ".env"
        if env_path.exists():
            return env_path
        current = current.parent
    return None


_env_file = _find_env_file()
if _env_file:
    load_dotenv(_env_file)


class Config:
    """Application configuration from environment variables."""

    # LLM Provider Selection
    LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "")  # Empty = auto-detect

    # LLM API Keys
    GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", "")
    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")

    # Generation model (empty = provider's creative model)
    GENERATION_MODEL: str = os.getenv("GENERATION_MODEL", "")
    GENERATION_MAX_TOKENS: int = int(os.getenv("GENERATION_MAX_TOKENS", "8192"))

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./worldforge.db")

    # Generation queue
    STALE_JOB_MINUTES: int = int(os.getenv("STALE_JOB_MINUTES", "10"))
    MIN_DESCRIPTION_LENGTH: int = int(os.getenv("MIN_DESCRIPTION_LENGTH", "50"))
    CLAIM_BATCH_SIZE: int = int(os.getenv("CLAIM_BATCH_SIZE", "5"))
    WORKER_POLL_SECONDS: float = float(os.getenv("WORKER_POLL_SECONDS", "5"))
    # Run a worker pass in-process when the API enqueues a job
    AUTOSTART_GENERATION: bool = os.getenv("AUTOSTART_GENERATION", "true").lower() == "true"

    # Debug
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    @classmethod
    def validate(cls) -> list[str]:
        """Validate configuration, return list of issues."""
        issues = []

        if not any([cls.GOOGLE_API_KEY, cls.ANTHROPIC_API_KEY, cls.OPENAI_API_KEY]):
            issues.append(
                "No LLM API keys configured. "
                "Set GOOGLE_API_KEY, ANTHROPIC_API_KEY, or OPENAI_API_KEY in .env"
            )
        if cls.STALE_JOB_MINUTES < 1:
            issues.append("STALE_JOB_MINUTES must be at least 1")
        if cls.CLAIM_BATCH_SIZE < 1:
            issues.append("CLAIM_BATCH_SIZE must be at least 1")

        return issues

    @classmethod
    def get_available_providers(cls) -> list[str]:
        """Get list of providers with configured API keys."""
        providers = []
        if cls.GOOGLE_API_KEY:
            providers.append("google")
        if cls.ANTHROPIC_API_KEY:
            providers.append("anthropic")
        if cls.OPENAI_API_KEY:
            providers.append("openai")
        return providers

    @classmethod
    def get_primary_provider(cls) -> str:
        """Get the primary provider name."""
        if cls.LLM_PROVIDER:
            return cls.LLM_PROVIDER.lower()
        if cls.GOOGLE_API_KEY:
            return "google"
        if cls.ANTHROPIC_API_KEY:
            return "anthropic"
        if cls.OPENAI_API_KEY:
            return "openai"
        return "none"

    @classmethod
    def get_api_key(cls, provider: str) -> str:
        """Get the configured API key for a provider name."""
        return {
            "google": cls.GOOGLE_API_KEY,
            "anthropic": cls.ANTHROPIC_API_KEY,
            "openai": cls.OPENAI_API_KEY,
        }.get(provider, "")

    @classmethod
    def get_database_url(cls) -> str:
        """Get the database URL."""
        return cls.DATABASE_URL


# Singleton config instance
config = Config()
