"""
Configuration management for the SiteGen backend.
Loads and validates environment variables.
"""

from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field, validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # AWS Bedrock Configuration
    aws_access_key_id: str = Field(..., description="AWS Access Key ID")
    aws_secret_access_key: str = Field(..., description="AWS Secret Access Key")
    aws_region: str = Field(default="us-east-1", description="AWS Region")
    claude_model_id: str = Field(
        default="anthropic.claude-sonnet-4-20250514-v1:0",
        description="Claude Model ID"
    )

    # Claude Configuration
    claude_max_tokens: int = Field(default=16000, description="Max tokens for generated sites")
    claude_temperature: float = Field(default=0.7, description="Claude temperature for generation")
    generation_timeout_seconds: int = Field(
        default=30,
        description="Wall-clock budget for a single model call"
    )
    generation_max_conflict_retries: int = Field(
        default=3,
        description="Attempts before a concurrent edit gives up"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./data/sitegen.db",
        description="SQLAlchemy database URL"
    )

    # Netlify Configuration
    netlify_access_token: Optional[str] = Field(
        default=None,
        description="Netlify personal access token (unset = no real deployments)"
    )
    netlify_api_url: str = Field(
        default="https://api.netlify.com/api/v1",
        description="Netlify API base URL"
    )
    netlify_timeout_seconds: float = Field(default=30.0, description="Netlify HTTP timeout")
    deploy_poll_delay_seconds: float = Field(
        default=3.0,
        description="Delay before the single post-deploy status check"
    )

    # Application Configuration
    app_env: str = Field(default="development", description="Environment")
    app_debug: bool = Field(default=False, description="Debug mode (echo SQL)")
    log_level: str = Field(default="INFO", description="Logging level")

    @validator('database_url')
    def validate_database_url(cls, v):
        """Ensure the directory for a file-backed SQLite database exists."""
        prefix = "sqlite:///"
        if v.startswith(prefix) and ":memory:" not in v:
            db_path = Path(v[len(prefix):])
            db_path.parent.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def netlify_configured(self) -> bool:
        """Whether real deployments can be made."""
        token = self.netlify_access_token
        return bool(token) and token != "your_netlify_access_token_here"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings: Optional[Settings] = None


def load_settings() -> Settings:
    """
    Load and validate settings from environment.

    Returns:
        Settings: Validated settings object

    Raises:
        ValueError: If required environment variables are missing
    """
    global settings

    if settings is None:
        try:
            settings = Settings()
            _validate_critical_settings(settings)
        except Exception as e:
            settings = None
            raise ValueError(f"Configuration error: {str(e)}")

    return settings


def _validate_critical_settings(settings: Settings) -> None:
    """
    Validate that all critical settings are present.

    Args:
        settings: Settings object to validate

    Raises:
        ValueError: If critical settings are missing
    """
    critical_fields = [
        'aws_access_key_id',
        'aws_secret_access_key',
    ]

    missing = []
    for field in critical_fields:
        value = getattr(settings, field, None)
        if not value or value == f"your_{field}_here":
            missing.append(field.upper())

    if missing:
        raise ValueError(
            f"Missing critical environment variables: {', '.join(missing)}. "
            f"Please set them in your .env file."
        )


def describe_settings(settings: Settings) -> list:
    """
    Human-readable summary of the loaded configuration (secrets masked).

    Args:
        settings: Settings object to describe

    Returns:
        list: Lines suitable for logging
    """
    return [
        f"Environment: {settings.app_env}",
        f"Log Level: {settings.log_level}",
        f"AWS Region: {settings.aws_region}",
        f"Claude Model: {settings.claude_model_id}",
        f"Database: {settings.database_url}",
        f"Netlify: {'configured' if settings.netlify_configured else 'not configured (mock deployments)'}",
        f"Deploy poll delay: {settings.deploy_poll_delay_seconds}s",
    ]


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Returns:
        Settings: Global settings object
    """
    if settings is None:
        return load_settings()
    return settings
