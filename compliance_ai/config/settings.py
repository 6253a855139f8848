"""
Application configuration settings for the generation orchestrator.
"""
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"
    OFFLINE = "offline"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="COMPLIANCE_AI_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Compliance AI Orchestrator"
    app_version: str = "1.0.0"
    environment: Environment = Environment.DEVELOPMENT
    log_level: LogLevel = LogLevel.INFO
    log_file: Optional[str] = None
    json_logs: bool = False

    # Circuit breaker configuration
    circuit_breaker_threshold: int = 5
    circuit_breaker_timeout: float = 30.0  # seconds
    circuit_breaker_success_threshold: int = 1
    provider_request_timeout: Optional[float] = 60.0

    # Generation
    default_content_provider: str = "openai"
    batch_item_delay: float = 1.5  # seconds between batch items
    cross_validation_threshold: float = 80.0

    # Guardrails
    guardrails_config_path: Optional[str] = None
    audit_log_path: Optional[str] = None

    @field_validator("circuit_breaker_threshold", "circuit_breaker_success_threshold")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("provider_request_timeout", mode="before")
    @classmethod
    def parse_request_timeout(cls, v):
        # "0" / "none" from the environment disables the per-call timeout
        if isinstance(v, str) and v.strip().lower() in ("", "0", "none"):
            return None
        if v is not None and float(v) <= 0:
            return None
        return v

    @field_validator("default_content_provider")
    @classmethod
    def validate_default_provider(cls, v):
        v = v.lower()
        if v not in ("openai", "anthropic", "gemini"):
            raise ValueError(f"Unknown provider: {v}")
        return v

    @property
    def skips_rate_limit_delay(self) -> bool:
        """Test and offline runs never sleep between batch items."""
        return self.environment in (Environment.TEST, Environment.OFFLINE)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
