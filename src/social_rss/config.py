"""
Configuration management for Social RSS.

Uses Pydantic for validation and pydantic-settings for environment variable support.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SourceConfig(BaseSettings):
    """Upstream list source configuration.

    Credentials are opaque to the pipeline; they are handed to the
    list source's login call and never inspected.

    Environment variables: SOURCE_USERNAME, SOURCE_PASSWORD, SOURCE_EMAIL,
    SOURCE_BASE_URL, SOURCE_PROXY_URL, ...
    """

    model_config = SettingsConfigDict(env_prefix="SOURCE_")

    # Account credentials
    username: str | None = Field(default=None, description="Account username")
    password: str | None = Field(default=None, description="Account password")
    email: str | None = Field(default=None, description="Account email")

    # Gateway connection
    base_url: str = Field(
        default="http://127.0.0.1:3100",
        description="Base URL of the list gateway API"
    )
    proxy_url: str | None = Field(default=None, description="Optional HTTP proxy")
    timeout_seconds: int = Field(default=10, ge=1, le=300, description="Request timeout")
    user_agent: str = Field(
        default="Social-RSS/0.1.0",
        description="User-Agent header"
    )

    # Retry settings
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_delay_seconds: float = Field(default=1.0, ge=0)

    @property
    def has_credentials(self) -> bool:
        """Whether all account credentials are configured."""
        return bool(self.username and self.password and self.email)


class MonitorConfig(BaseSettings):
    """List monitoring and scheduling configuration."""

    model_config = SettingsConfigDict(env_prefix="MONITOR_")

    lists: str = Field(default="", description="Comma-separated list identifiers")
    interval_minutes: int = Field(default=30, ge=1, description="Poll interval")
    max_per_list: int = Field(default=50, ge=1, le=1000, description="Max items fetched per list")
    expand_threads: bool = Field(default=False, description="Fetch reply-chain context per item")

    # Timing
    warmup_seconds: float = Field(default=5.0, ge=0, description="Delay before the initial pass")
    inter_list_delay_seconds: float = Field(
        default=2.0, ge=0,
        description="Pause between consecutive list fetches"
    )
    fetch_timeout_seconds: float = Field(
        default=30.0, gt=0,
        description="Upper bound on a single list fetch"
    )

    @property
    def list_ids(self) -> list[str]:
        """Configured list identifiers, trimmed, empty entries dropped."""
        return [part.strip() for part in self.lists.split(",") if part.strip()]


class FilterConfig(BaseSettings):
    """Item filter configuration."""

    model_config = SettingsConfigDict(env_prefix="FILTER_")

    exclude_reposts: bool = Field(default=False, description="Drop reposts")
    exclude_replies: bool = Field(default=False, description="Drop replies")
    min_length: int = Field(default=10, ge=0, description="Minimum body length")


class FeedConfig(BaseSettings):
    """Published feed configuration."""

    model_config = SettingsConfigDict(env_prefix="FEED_")

    title: str = Field(default="Twitter Lists RSS Feed", description="Channel title")
    description: str = Field(
        default="Aggregated tweets from monitored Twitter lists",
        description="Channel description"
    )
    link: str = Field(default="https://twitter.com", description="Channel link")
    generator: str = Field(default="Social RSS Aggregator", description="Generator string")
    max_entries: int = Field(default=500, ge=1, description="Max items in the document")

    # Storage
    output_dir: str = Field(default="./rss-feeds", description="Output directory")
    feed_filename: str = Field(default="twitter_lists.xml", description="Feed document filename")
    dedup_filename: str = Field(
        default="processed_items.json",
        description="Processed identifier snapshot filename"
    )

    # HTTP caching
    cache_max_age: int = Field(default=1800, ge=0, description="Cache-Control max-age in seconds")

    @property
    def feed_path(self) -> Path:
        return Path(self.output_dir) / self.feed_filename

    @property
    def dedup_path(self) -> Path:
        return Path(self.output_dir) / self.dedup_filename


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        description="Log format"
    )

    # File logging
    file_enabled: bool = Field(default=True, description="Enable file logging")
    file_path: str = Field(default="logs/social_rss.log", description="Log file path")
    rotation: str = Field(default="100 MB", description="Log rotation size")
    retention: str = Field(default="30 days", description="Log retention period")

    # Console logging
    console_enabled: bool = Field(default=True, description="Enable console logging")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v


class WebConfig(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="WEB_")

    host: str = Field(default="0.0.0.0", description="Web server host")
    port: int = Field(default=3001, ge=1, le=65535, description="Web server port")
    debug: bool = Field(default=False, description="Debug mode")
    api_token: str | None = Field(default=None, description="Bearer token guarding all routes but /health")

    @field_validator("api_token")
    @classmethod
    def blank_token_is_none(cls, v: str | None) -> str | None:
        """Treat an empty token as unset."""
        if v is not None and not v.strip():
            return None
        return v


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SOCIAL_RSS_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    version: str = Field(default="0.1.0", description="Application version")
    app_name: str = Field(default="Social RSS", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    # Sub-configurations
    source: SourceConfig = Field(default_factory=SourceConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    filter: FilterConfig = Field(default_factory=FilterConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    web: WebConfig = Field(default_factory=WebConfig)


_SECTIONS = {
    "source": SourceConfig,
    "monitor": MonitorConfig,
    "filter": FilterConfig,
    "feed": FeedConfig,
    "logging": LoggingConfig,
    "web": WebConfig,
}


def load_config_from_yaml(yaml_path: str) -> Config:
    """Build the configuration from a YAML file.

    Sections present in the file are taken from it as-is; sections it omits
    fall back to environment variables and defaults.

    Raises:
        FileNotFoundError: If ``yaml_path`` does not exist
    """
    import yaml

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    with yaml_file.open("r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    main_config = {}
    for key, value in config_dict.items():
        if key in _SECTIONS:
            main_config[key] = _SECTIONS[key](**(value or {}))
        else:
            main_config[key] = value

    for key, config_class in _SECTIONS.items():
        main_config.setdefault(key, config_class())

    return Config(**main_config)


def load_config(yaml_path: Optional[str] = None) -> Config:
    """Build the one configuration object used for the process lifetime."""
    if yaml_path:
        return load_config_from_yaml(yaml_path)
    return Config()
