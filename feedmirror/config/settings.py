"""
FeedMirror Configuration System
===============================

Configuration through environment variables and Pydantic models.
Environment variables (``FEEDMIRROR_`` prefix, ``__`` for nesting) override
Field defaults; a ``.env`` file in the working directory is honoured.
"""

from pathlib import Path
from typing import Dict, List, Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class StorageBackend(str, Enum):
    """Where published documents are written."""
    FILESYSTEM = "filesystem"
    S3 = "s3"


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# Em dash with spaces, and the same bytes decoded as cp1252 (seen in older feeds)
DEFAULT_TITLE_DELIMITERS = [" — ", " â€” "]


class PathSettings(BaseModel):
    """Local directory layout."""
    sources_dir: str = Field(default="data/sources", description="Directory of source documents")
    feeds_dir: str = Field(default="feeds", description="Directory of published manifests")
    items_dir: str = Field(default="items", description="Directory of published item documents")


class FetchSettings(BaseModel):
    """HTTP fetch configuration."""
    timeout_seconds: float = Field(default=15.0, gt=0, le=300, description="Total request timeout in seconds")
    user_agent: str = Field(default="FeedMirror/1.0", description="User-Agent header sent with feed requests")


class StorageSettings(BaseModel):
    """Persistence backend configuration."""
    backend: StorageBackend = Field(default=StorageBackend.FILESYSTEM, description="Persistence backend")
    bucket: Optional[str] = Field(default=None, description="Object storage bucket name")
    region: Optional[str] = Field(default=None, description="Object storage region")
    endpoint_url: Optional[str] = Field(default=None, description="Custom endpoint for S3-compatible stores")
    access_key_id: Optional[str] = Field(default=None, description="Object storage access key id")
    secret_access_key: Optional[str] = Field(default=None, description="Object storage secret key")
    key_prefix: str = Field(default="", description="Prefix prepended to every object key")
    cache_control: str = Field(default="max-age=3600", description="Cache-Control for uploaded objects")
    max_concurrent_uploads: int = Field(default=16, ge=1, le=128, description="Upload fan-out limit per source")

    @field_validator("key_prefix")
    @classmethod
    def normalize_prefix(cls, v):
        """Strip slashes so keys join cleanly."""
        return v.strip("/")

    def missing_credentials(self) -> List[str]:
        """Names of settings required by the s3 backend that are unset."""
        required = {
            "storage.bucket": self.bucket,
            "storage.access_key_id": self.access_key_id,
            "storage.secret_access_key": self.secret_access_key,
        }
        return [name for name, value in required.items() if not value]


class FormattingSettings(BaseModel):
    """Title and body rendering."""
    title_delimiters: List[str] = Field(
        default_factory=lambda: list(DEFAULT_TITLE_DELIMITERS),
        description="Literal delimiters that split a title into headings",
    )
    missing_title: str = Field(default="No Title", description="Title used when an item has none")
    missing_link: str = Field(default="#", description="Link target used when an item has none")
    title_suffix_rules: Dict[str, str] = Field(
        default_factory=lambda: {
            "news.ycombinator.com": " | Hacker News",
            "hnrss.org": " | Hacker News",
        },
        description="Per-domain suffixes stripped from item titles",
    )

    @field_validator("title_delimiters")
    @classmethod
    def validate_delimiters(cls, v):
        """Delimiters must be non-empty strings."""
        if any(not d for d in v):
            raise ValueError("title delimiters must be non-empty")
        return v


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/feedmirror.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class FeedMirrorSettings(BaseSettings):
    """Main application settings."""

    paths: PathSettings = Field(default_factory=PathSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    formatting: FormattingSettings = Field(default_factory=FormattingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="FeedMirror", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "FEEDMIRROR_",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration.

        Raises:
            ConfigurationError: If the selected backend cannot be used
        """
        errors = []

        if self.storage.backend == StorageBackend.S3:
            missing = self.storage.missing_credentials()
            if missing:
                raise ConfigurationError(
                    f"Object storage backend requires: {', '.join(missing)}",
                    config_key=missing[0],
                    error_code=ErrorCode.CONFIG_MISSING,
                )

        if self.logging.file_path:
            try:
                Path(self.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID,
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings(**overrides) -> FeedMirrorSettings:
    """Load settings from environment variables and defaults.

    Keyword overrides take precedence over the environment. Validation of
    backend requirements is left to :meth:`FeedMirrorSettings.validate_configuration`
    so that tools like ``check-config`` can report problems instead of
    failing to start.

    Raises:
        ConfigurationError: If values cannot be parsed
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        return FeedMirrorSettings(**overrides)
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_PARSE_ERROR,
        ) from e


_settings: Optional[FeedMirrorSettings] = None


def get_settings(reload: bool = False) -> FeedMirrorSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
