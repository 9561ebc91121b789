"""
Configuration management for guided-translator.

Handles loading configuration from YAML files and environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from guided_translator.llm.factory import LLMProviderType

# Load .env file if present (before Settings initialization)
load_dotenv()

API_KEYS_ENV = "GUIDED_TRANSLATOR_API_KEYS"
PROVIDER_KEY_ENV = {
    LLMProviderType.OPENROUTER: "OPENROUTER_API_KEY",
    LLMProviderType.GEMINI: "GEMINI_API_KEY",
}
VISION_KEY_ENV = "VISION_API_KEY"


def split_keys(value: str) -> list[str]:
    """Split a comma separated key list, dropping blanks."""
    return [key.strip() for key in value.split(",") if key.strip()]


class PathsConfig(BaseModel):
    """Configuration for file paths."""

    output_dir: Path = Field(default=Path("./translated"))
    database_path: Path = Field(default=Path("./guided_translator.db"))

    @field_validator("output_dir", "database_path")
    @classmethod
    def expand_path(cls, v: Path) -> Path:
        """Expand user home directory and make path absolute."""
        return Path(v).expanduser().resolve()


class ExtractionConfig(BaseModel):
    """Configuration for document text extraction."""

    # Vision transcription is used for PDFs only when a key is set
    vision_api_key: str = Field(default="")
    vision_model: str = Field(default="gemini-1.5-flash")
    vision_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai/"
    )
    image_dpi: int = Field(default=150, ge=72, le=600)
    page_delay: float = Field(default=1.0, ge=0.0, le=60.0)
    timeout_seconds: float = Field(default=60.0, ge=5.0, le=600.0)


class TranslationConfig(BaseModel):
    """Configuration for translation."""

    provider: LLMProviderType = Field(default=LLMProviderType.OPENROUTER)
    model: str = Field(default="")
    # Overrides the provider's endpoint; required for "custom"
    base_url: str = Field(default="")
    api_keys: list[str] = Field(default_factory=list)
    source_language: str = Field(default="en")
    target_language: str = Field(default="zh")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, ge=256, le=32000)
    timeout_seconds: float = Field(default=120.0, ge=5.0, le=600.0)
    # Merge stored user term preferences over the glossary before a run
    apply_user_glossary: bool = Field(default=True)

    @field_validator("api_keys", mode="before")
    @classmethod
    def parse_keys(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return split_keys(v)
        return v


class ProcessingConfig(BaseModel):
    """Configuration for chunking and call pacing."""

    chunk_max_tokens: int = Field(default=800, ge=1, le=32000)
    inter_call_delay: float = Field(default=2.0, ge=0.0, le=60.0)
    base_delay: float = Field(default=3.0, ge=0.0, le=120.0)
    max_retries: int = Field(default=5, ge=0, le=20)


class ExportConfig(BaseModel):
    """Configuration for export."""

    # Write <name>_<lang>.md after a translation run completes
    auto_export: bool = Field(default=True)


class LoggingConfig(BaseModel):
    """Configuration for the processing audit log."""

    level: str = Field(default="INFO")

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class ProjectConfig(BaseModel):
    """Project metadata configuration."""

    name: str = Field(default="translation-project")
    description: str = Field(default="")


class Settings(BaseSettings):
    """Main settings class that combines all configurations."""

    model_config = SettingsConfigDict(
        env_prefix="",  # No prefix for simpler env vars
        env_nested_delimiter="__",
        extra="ignore",
    )

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    translation: TranslationConfig = Field(default_factory=TranslationConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable fallbacks for API keys."""
        super().__init__(**data)
        if not self.translation.api_keys:
            self.translation.api_keys = self._keys_from_env()
        if not self.extraction.vision_api_key:
            self.extraction.vision_api_key = os.getenv(VISION_KEY_ENV, "")

    def _keys_from_env(self) -> list[str]:
        keys = split_keys(os.getenv(API_KEYS_ENV, ""))
        if keys:
            return keys
        provider_env = PROVIDER_KEY_ENV.get(self.translation.provider)
        if provider_env:
            return split_keys(os.getenv(provider_env, ""))
        return []

    @classmethod
    def from_yaml(cls, path: Path | str) -> Settings:
        """Load settings from a YAML file, with environment variable overrides."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        yaml_config = _substitute_env_vars(yaml_config)

        return cls(**yaml_config)


def _substitute_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively substitute ${ENV_VAR} patterns in config values."""
    result = {}
    for key, value in config.items():
        if isinstance(value, dict):
            result[key] = _substitute_env_vars(value)
        elif isinstance(value, str):
            result[key] = _substitute_value(value)
        elif isinstance(value, list):
            result[key] = [
                _substitute_env_vars(item)
                if isinstance(item, dict)
                else _substitute_value(item)
                if isinstance(item, str)
                else item
                for item in value
            ]
        else:
            result[key] = value
    return result


def _substitute_value(value: str) -> str:
    if value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1], "")
    return value


def load_config(path: Path | str | None = None) -> Settings:
    """
    Load configuration from YAML file or return defaults.

    Args:
        path: Path to YAML config file. If None, looks for config.yaml in current directory.

    Returns:
        Settings instance with merged YAML and environment configurations.
    """
    if path is None:
        default_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(".guided-translator.yaml"),
        ]
        for p in default_paths:
            if p.exists():
                path = p
                break

    if path is not None:
        return Settings.from_yaml(path)

    return Settings()


DEFAULT_CONFIG = """# guided-translator configuration
project:
  name: "my-translation-project"
  description: "Technical standard translation"

paths:
  output_dir: "./translated"
  database_path: "./guided_translator.db"

extraction:
  # Set to transcribe PDF pages with a vision model instead of layout analysis
  vision_api_key: "${VISION_API_KEY}"
  vision_model: "gemini-1.5-flash"
  image_dpi: 150
  # Pause between page calls (seconds)
  page_delay: 1.0

translation:
  # openrouter, gemini or custom (custom needs base_url)
  provider: "openrouter"
  model: "google/gemini-2.0-flash-001"
  # Comma separated keys are rotated when one is rate limited
  api_keys: "${GUIDED_TRANSLATOR_API_KEYS}"
  source_language: "en"
  target_language: "zh"
  temperature: 0.3
  timeout_seconds: 120
  # Stored term preferences (guided-translate prefer) override the glossary
  apply_user_glossary: true

processing:
  # Token budget per chunk
  chunk_max_tokens: 800
  # Pause after each successful call (seconds)
  inter_call_delay: 2.0
  # Backoff delay grows as base_delay * retry (seconds)
  base_delay: 3.0
  max_retries: 5

export:
  auto_export: true

logging:
  level: "INFO"
"""


def create_default_config(path: Path | str = "config.yaml") -> None:
    """Create a default configuration file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(DEFAULT_CONFIG)
