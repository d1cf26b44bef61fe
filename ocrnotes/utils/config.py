"""Configuration management for the OCR notes service.

Loads YAML configuration with sensible defaults, then applies environment
overrides for the credentials that are never meant to live in a file
(OCR API key, Supabase project URL and anon key, database URL).
"""

import logging
from pathlib import Path
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_OCR_KEY_PLACEHOLDER = "your-mistral-api-key"
_SUPABASE_URL_PLACEHOLDER = "your-supabase-project-url"
_SUPABASE_KEY_PLACEHOLDER = "your-supabase-anon-key"


class OCRConfig(BaseModel):
    """Configuration for the Mistral OCR provider."""

    api_key: str | None = None
    model: str = "mistral-ocr-latest"

    @property
    def is_configured(self) -> bool:
        """Whether the API key is set to a real (non-placeholder) value."""
        if not self.api_key:
            logger.warning("Mistral API key is not defined")
            return False
        if _OCR_KEY_PLACEHOLDER in self.api_key:
            logger.warning("Mistral API key is still using the placeholder value")
            return False
        return True


class SupabaseConfig(BaseModel):
    """Configuration for the Supabase auth provider."""

    url: str | None = None
    anon_key: str | None = None
    oauth_provider: str = "google"

    @property
    def is_configured(self) -> bool:
        """Whether both the project URL and anon key are usable."""
        return _is_valid_url(self.url) and _is_valid_key(self.anon_key)


class DatabaseConfig(BaseModel):
    """Configuration for the relational document store."""

    url: str = "sqlite+aiosqlite:///./ocrnotes.db"
    echo: bool = False


class ServerConfig(BaseModel):
    """Configuration for the HTTP server and session cookies."""

    host: str = "0.0.0.0"
    port: int = 8000
    secure_cookies: bool = False


class AppConfig(BaseModel):
    """Top-level application configuration."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    supabase: SupabaseConfig = Field(default_factory=SupabaseConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"


class EnvOverrides(BaseSettings):
    """Environment variables that take precedence over the YAML file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mistral_api_key: str | None = None
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    database_url: str | None = None
    log_level: str | None = None

    def apply(self, config: AppConfig) -> AppConfig:
        """Return a copy of ``config`` with every set variable applied."""
        config = config.model_copy(deep=True)
        if self.mistral_api_key:
            config.ocr.api_key = self.mistral_api_key
        if self.supabase_url:
            config.supabase.url = self.supabase_url
        if self.supabase_anon_key:
            config.supabase.anon_key = self.supabase_anon_key
        if self.database_url:
            config.database.url = self.database_url
        if self.log_level:
            config.log_level = self.log_level
        return config


def _is_valid_url(url: str | None) -> bool:
    if not url:
        logger.warning("Supabase URL is not defined")
        return False
    if _SUPABASE_URL_PLACEHOLDER in url:
        logger.warning("Supabase URL is still using the placeholder value")
        return False
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        logger.error("Invalid Supabase URL format: %s", url)
        return False
    return True


def _is_valid_key(key: str | None) -> bool:
    if not key:
        logger.warning("Supabase anon key is not defined")
        return False
    if _SUPABASE_KEY_PLACEHOLDER in key:
        logger.warning("Supabase anon key is still using the placeholder value")
        return False
    return True


def load_config(path: Path | None = None, use_env: bool = True) -> AppConfig:
    """Load configuration from a YAML file and the environment.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.
        use_env: Whether to apply environment variable overrides.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        config = AppConfig(**raw)
    else:
        logger.info("No config file found at %s, using defaults", path)
        config = AppConfig()

    if use_env:
        config = EnvOverrides().apply(config)
    return config
