"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="issue-intake", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== OpenAI ==========
    openai_api_key: Optional[str] = Field(
        default=None,
        description="OpenAI API key (used when Secrets Manager has no value)"
    )
    openai_secret_id: str = Field(
        default="OPENAI_API_KEY",
        description="Secrets Manager id holding the OpenAI API key"
    )
    llm_model: str = Field(
        default="gpt-4.1-mini",
        description="Model used to synthesize issues"
    )
    transcription_model: str = Field(
        default="gpt-4o-transcribe",
        description="Speech-to-text model for audio/video attachments"
    )
    llm_temperature: float = Field(
        default=0.2,
        description="Sampling temperature for issue synthesis",
        ge=0.0,
        le=1.0
    )
    llm_max_tokens: int = Field(
        default=1500,
        description="Max tokens for the synthesized issue",
        ge=1,
        le=8000
    )
    mock_llm: bool = Field(
        default=False,
        description="Use mock LLM responses for testing (no API calls)"
    )

    # ========== Linear ==========
    linear_api_key: Optional[str] = Field(
        default=None,
        description="Linear API key (used when Secrets Manager has no value)"
    )
    linear_secret_id: str = Field(
        default="LINEAR_API_KEY",
        description="Secrets Manager id holding the Linear API key"
    )
    linear_api_url: str = Field(
        default="https://api.linear.app/graphql",
        description="Linear GraphQL endpoint"
    )
    tracker_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for Linear API calls",
        ge=0.1,
        le=120
    )
    recent_issues_limit: int = Field(
        default=20,
        description="Recent issues included as classifier context",
        ge=0,
        le=100
    )

    # ========== AWS ==========
    aws_region: str = Field(default="us-west-2", description="AWS region for S3 and Secrets Manager")
    s3_bucket: str = Field(
        default="linear-request-uploads",
        description="Bucket receiving submission attachments"
    )
    s3_url_expiry_seconds: int = Field(
        default=604800,
        description="Lifetime of presigned attachment URLs",
        ge=60,
        le=604800
    )
    use_secrets_manager: bool = Field(
        default=True,
        description="Look up API keys in AWS Secrets Manager before falling back to env"
    )

    # ========== Triage ==========
    transcript_max_chars: int = Field(
        default=4000,
        description="Hard cap on transcript text handed to the classifier",
        ge=0
    )
    routing_rules_path: Path = Field(
        default=Path("routing_rules.yaml"),
        description="Optional YAML file overriding the keyword routing table"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # ========== Grafana OTLP Metrics ==========
    grafana_host: Optional[str] = Field(
        default=None,
        description="Grafana OTLP gateway URL (e.g., https://otlp-gateway-prod-us-west-0.grafana.net)"
    )
    grafana_api_key: Optional[str] = Field(
        default=None,
        description="Grafana API key for OTLP authentication"
    )
    grafana_instance_id: Optional[str] = Field(
        default=None,
        description="Grafana instance ID for OTLP authentication"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class IssueCategory(str):
    """Categories the classifier assigns to a submission."""
    BUG = "bug"
    FEATURE = "feature"
    QUESTION = "question"
    TASK = "task"


class Severity(str):
    """Submission severity levels."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MediaKind(str):
    """Attachment buckets."""
    IMAGE = "image"
    AUDIO_VIDEO = "audio_video"
    OTHER = "other"


# Linear priority scale: 1 urgent .. 4 low (0 means "no priority")
MIN_PRIORITY = 1
MAX_PRIORITY = 4

DEFAULT_ISSUE_TITLE = "New Issue"
ANONYMOUS_REPORTER = "anonymous"


# ========== Lists for validation ==========

ISSUE_CATEGORIES = [
    IssueCategory.BUG, IssueCategory.FEATURE,
    IssueCategory.QUESTION, IssueCategory.TASK
]
SEVERITY_LEVELS = [
    Severity.CRITICAL, Severity.HIGH,
    Severity.MEDIUM, Severity.LOW
]
ESCALATING_SEVERITIES = [Severity.CRITICAL, Severity.HIGH]
