"""Environment-driven settings (pydantic-settings).

Every section reads its own prefixed variables (TRANSCRIPTION_*, LLM_*,
WORKFLOW_*, LOG_*) from the process environment or the nearest `.env`.
"""

from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from podflow.exceptions import ConfigurationError

# apps/* and scripts/ run one or two levels below the repo root.
_ENV_FILES = (".env", "../.env", "../../.env")
_REPO_ROOT = Path(__file__).resolve().parents[3]

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"


def _env(prefix: str = "") -> SettingsConfigDict:
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )


class TranscriptionConfig(BaseSettings):
    model_config = _env("TRANSCRIPTION_")

    provider: str = "assemblyai"
    base_url: str = "https://api.assemblyai.com/v2"
    api_key: str = ""
    poll_interval_s: float = Field(default=3.0, gt=0)
    timeout: float = Field(default=3600.0, gt=0)  # 整个转写任务（提交+轮询）上限
    request_timeout: float = Field(default=60.0, gt=0)


class LLMConfig(BaseSettings):
    model_config = _env("LLM_")

    provider: str = "openai"
    base_url: str | None = None
    api_key: str = ""
    model: str = "gpt-5-mini"
    request_timeout: float = Field(default=120.0, gt=0)
    max_tokens: int | None = Field(default=None, ge=256)


class WorkflowConfig(BaseSettings):
    """Step/workflow retry limits and generation knobs."""

    model_config = _env("WORKFLOW_")

    step_max_attempts: int = Field(default=3, ge=1)
    workflow_max_attempts: int = Field(default=3, ge=1)
    backoff_min_s: float = Field(default=1.0, ge=0)
    backoff_max_s: float = Field(default=30.0, ge=0)
    journal_ttl_days: int = Field(default=7, ge=1)

    max_youtube_chapters: int = Field(default=100, ge=1)
    twitter_max_chars: int = Field(default=280, ge=4)
    transcript_prompt_chars: int = Field(
        default=3000,
        ge=200,
        description="Max transcript characters embedded in a generation prompt.",
    )

    @model_validator(mode="after")
    def _check_backoff(self) -> "WorkflowConfig":
        if self.backoff_max_s < self.backoff_min_s:
            raise ConfigurationError("WORKFLOW_BACKOFF_MAX_S must be >= WORKFLOW_BACKOFF_MIN_S")
        return self


class LoggingConfig(BaseSettings):
    """LOG_FILE may contain `{component}`; relative paths land under log_dir."""

    model_config = _env("LOG_")

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
    console: bool = True
    file: str | None = None
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=0)
    backup_count: int = Field(default=5, ge=0)


class Settings(BaseSettings):
    model_config = _env()

    log_dir: str = "./logs"

    # Project documents, step journal and the event queue all live in Redis.
    redis_url: str = "redis://localhost:6379"

    transcription: TranscriptionConfig = Field(default_factory=TranscriptionConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def _anchor_log_dir(self) -> "Settings":
        raw = str(self.log_dir or "").strip()
        if raw and not Path(raw).is_absolute():
            self.log_dir = str((_REPO_ROOT / raw).resolve())
        return self

    @staticmethod
    def _with_provider(section: BaseSettings, what: str) -> dict[str, Any]:
        cfg = section.model_dump()
        provider = str(cfg.get("provider") or "").strip().lower()
        if not provider:
            raise ConfigurationError(f"{what} provider is not configured")
        cfg["provider"] = provider
        return cfg

    def transcription_config(self) -> dict[str, Any]:
        """Provider-registry kwargs for the transcription client."""
        return self._with_provider(self.transcription, "transcription")

    def llm_config(self) -> dict[str, Any]:
        """Provider-registry kwargs for the LLM client.

        OpenAI-style providers fall back to the public endpoint; for Anthropic
        an empty base_url is dropped so the SDK default applies.
        """
        cfg = self._with_provider(self.llm, "LLM")
        base_url = str(cfg.get("base_url") or "").strip()
        if cfg["provider"] in {"openai", "openai_compat"}:
            cfg["base_url"] = base_url or DEFAULT_OPENAI_BASE_URL
        elif base_url:
            cfg["base_url"] = base_url
        else:
            cfg.pop("base_url", None)
        return cfg
