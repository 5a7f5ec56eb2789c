"""Configuration management using pydantic-settings."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from subtranslate.exceptions import ConfigurationError

_ENV_FILES = (".env", "../.env", "../../.env")

DEFAULT_WINDOW_SIZE = 100
DEFAULT_FILTER_THRESHOLD = 0.7
DEFAULT_MODEL_NAME = "default"


class ApiType(str, Enum):
    OPENAI = "openai"
    OLLAMA = "ollama"
    CLAUDE = "claude"
    GEMINI = "gemini"


class JsonModeType(str, Enum):
    NONE = "none"
    JSON_OBJECT = "json_object"
    JSON_SCHEMA = "json_schema"


class CodecKind(str, Enum):
    JSON_SCHEMA = "json_schema"
    JSON_ARRAY = "json_array"
    TAGGED_LINES = "tagged_lines"
    PLAIN_LINES = "plain_lines"


class ProviderConfig(BaseModel):
    """One configured LLM endpoint."""

    id: str
    api_type: ApiType = ApiType.OPENAI
    base_url: str | None = None
    api_key: str | None = None
    json_mode_type: JsonModeType = JsonModeType.JSON_OBJECT


class LLMSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    providers: list[ProviderConfig] = Field(default_factory=list)
    request_timeout_s: float = Field(default=120.0, gt=0)
    max_tokens: int = Field(default=4096, ge=1, description="Output ceiling for Claude-style providers.")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
    console: bool = True
    file: str | None = None
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=0)
    backup_count: int = Field(default=5, ge=0)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILES, env_file_encoding="utf-8", extra="ignore"
    )

    log_dir: str = "./logs"

    llm: LLMSettings = Field(default_factory=LLMSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def provider(self, provider_id: str) -> ProviderConfig:
        """Return the provider registered under `provider_id`."""
        wanted = str(provider_id or "").strip()
        for cfg in self.llm.providers:
            if cfg.id == wanted:
                return cfg
        known = [p.id for p in self.llm.providers]
        raise ConfigurationError(f"Provider {wanted!r} not found (configured: {known})")

    def has_provider(self, provider_id: str) -> bool:
        wanted = str(provider_id or "").strip()
        return any(cfg.id == wanted for cfg in self.llm.providers)


def split_model_ref(ref: str) -> tuple[str, str]:
    """Split a `provider_id/model` reference; a bare id uses the default model."""
    raw = str(ref or "").strip()
    if not raw:
        raise ConfigurationError("Empty model reference (expected 'provider_id/model')")
    provider_id, sep, model = raw.partition("/")
    if not sep or not model.strip():
        return provider_id.strip(), DEFAULT_MODEL_NAME
    return provider_id.strip(), model.strip()


class LLMEngineConfig(BaseModel):
    type: Literal["llm"] = "llm"
    model: str  # {provider_id}/{model}
    system_prompt: str | None = None
    window: int = Field(default=DEFAULT_WINDOW_SIZE, ge=1)
    codec: CodecKind | None = None


class LocalEngineConfig(BaseModel):
    type: Literal["local"] = "local"
    window: int = Field(default=DEFAULT_WINDOW_SIZE, ge=1)


TranslateEngineConfig = Annotated[LLMEngineConfig | LocalEngineConfig, Field(discriminator="type")]


class TranslateConfig(BaseModel):
    engine: TranslateEngineConfig
    target_lang: str
    source_lang: str | None = None

    @property
    def source_hint(self) -> str | None:
        lang = str(self.source_lang or "").strip()
        if not lang or lang.lower() == "auto":
            return None
        return lang


class FilterConfig(BaseModel):
    prompt: str
    threshold: float = Field(default=DEFAULT_FILTER_THRESHOLD, ge=0.0, le=1.0)
    llm: str | None = None  # optional {provider_id}/{model} override


class EditConfig(BaseModel):
    default_model: str  # {provider_id}/{model}
    instructions: list[str] | None = None
    filters: list[FilterConfig] | None = None

    @property
    def directive(self) -> str:
        return "\n".join(s.strip() for s in list(self.instructions or []) if s and s.strip())


class TranslationRunConfig(BaseModel):
    translate: TranslateConfig
    edit: EditConfig | None = None

    @model_validator(mode="after")
    def _check_target_language(self) -> "TranslationRunConfig":
        if not str(self.translate.target_lang or "").strip():
            raise ValueError("translate.target_lang must not be empty")
        return self
