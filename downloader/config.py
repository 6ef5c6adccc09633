"""
Configuration management for the article downloader.

This module uses pydantic-settings to manage all configuration aspects including:
- Browser rendering and per-item timeouts
- Catalog link filtering
- Output directory and file naming
- Batch pacing
- Logging, metrics and the web transport

Configuration is loaded from environment variables or a .env file.
"""
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from downloader import DEFAULT_OUTPUT_DIR


class LogLevel(str, Enum):
    """Log levels supported by the application."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CollisionPolicy(str, Enum):
    """What to do when two articles sanitize to the same file name."""
    SUFFIX = "suffix"        # Title (2).md, Title (3).md, ...
    OVERWRITE = "overwrite"  # last write wins
    FAIL = "fail"            # report a persist error for the later article


class BrowserConfig(BaseModel):
    """Configuration for the headless browser."""
    headless: bool = True
    browser_type: str = "chromium"  # chromium, firefox, webkit
    viewport_width: int = 1200
    viewport_height: int = 900
    user_agent: Optional[str] = None
    disable_javascript: bool = False
    block_ads: bool = True
    stealth_mode: bool = True

    # Article pages are considered ready once this node is visible
    readiness_selector: str = "#js_content"
    # Anchors inside this scope are collected from catalog pages
    link_scope_selector: str = "#js_content a"

    catalog_timeout_seconds: float = 40
    item_timeout_seconds: float = 60

    @field_validator("browser_type")
    @classmethod
    def validate_browser_type(cls, v: str) -> str:
        """Only the engines Playwright ships are accepted."""
        if v not in ("chromium", "firefox", "webkit"):
            raise ValueError(f"Unsupported browser type: {v}")
        return v

    @field_validator("catalog_timeout_seconds", "item_timeout_seconds")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v


class CatalogConfig(BaseModel):
    """Configuration for recognising target article links."""
    # Links on a catalog page must contain this to be kept
    link_pattern: str = "mp.weixin.qq.com/s"
    # Tokens of a pasted list must contain this to be kept
    direct_host_pattern: str = "mp.weixin.qq.com"


class OutputConfig(BaseModel):
    """Configuration for persisted Markdown files."""
    output_dir: Path = Field(default=Path(DEFAULT_OUTPUT_DIR))
    collision_policy: CollisionPolicy = CollisionPolicy.SUFFIX
    # Publish dates are not parsed from pages yet; every article gets this value
    placeholder_date: str = "2026-01-09"


class BatchConfig(BaseModel):
    """Configuration for batch pacing."""
    inter_item_delay_seconds: float = 1.0

    @field_validator("inter_item_delay_seconds")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("inter_item_delay_seconds must not be negative")
        return v


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""
    log_level: LogLevel = LogLevel.INFO
    structured_logging: bool = False


class MetricsConfig(BaseModel):
    """Configuration for Prometheus metrics."""
    prometheus_enabled: bool = False
    prometheus_port: int = 8000


class WebConfig(BaseModel):
    """Configuration for the local web page and event stream."""
    host: str = "127.0.0.1"
    port: int = 12345
    open_browser: bool = True
    open_delay_seconds: float = 0.5

    @model_validator(mode="after")
    def _check_port(self) -> "WebConfig":
        if not 0 < self.port < 65536:
            raise ValueError("port must be between 1 and 65535")
        return self


class Settings(BaseSettings):
    """Main settings class for the article downloader."""
    app_name: str = "article-downloader"
    version: str = "0.1.0"
    debug: bool = Field(default=False)

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )


def load_settings() -> Settings:
    """Load settings from environment variables and .env file."""
    return Settings()
