"""Server configuration via environment variables."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_VIDEO_MODEL = "veo-3.1-fast-generate-preview"
DEFAULT_EXTEND_MODEL = "veo-3.1-generate-preview"
DEFAULT_OUTPUT_DIR = Path.home() / ".cache" / "veo-studio-mcp" / "videos"


def _resolve_tracing_enabled(flag_value: str, tracking_uri: str) -> bool:
    """Derive tracing_enabled from env vars.

    - ``VEO_TRACING_ENABLED=false`` → always disabled (explicit opt-out).
    - Otherwise enabled only when ``MLFLOW_TRACKING_URI`` is non-empty.
    """
    if flag_value.lower() == "false":
        return False
    return bool(tracking_uri)


class ServerConfig(BaseModel):
    """Runtime configuration resolved from environment."""

    gemini_api_key: str = Field(default="")
    video_model: str = Field(default=DEFAULT_VIDEO_MODEL)
    extend_model: str = Field(default=DEFAULT_EXTEND_MODEL)
    poll_interval_seconds: float = Field(default=8.0)
    poll_timeout_seconds: float = Field(default=1800.0)
    poll_max_attempts: int = Field(default=0)
    max_jobs: int = Field(default=50)
    output_dir: str = Field(default="")
    download_timeout_seconds: float = Field(default=120.0)
    tracing_enabled: bool = Field(default=False)
    mlflow_tracking_uri: str = Field(default="")
    mlflow_experiment_name: str = Field(default="veo-studio-mcp")

    @field_validator("poll_interval_seconds", "poll_timeout_seconds", "download_timeout_seconds")
    @classmethod
    def validate_positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Poll and download durations must be > 0")
        return value

    @field_validator("poll_max_attempts")
    @classmethod
    def validate_max_attempts(cls, value: int) -> int:
        if value < 0:
            raise ValueError("poll_max_attempts must be >= 0 (0 = no attempt limit)")
        return value

    @field_validator("max_jobs")
    @classmethod
    def validate_max_jobs(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_jobs must be >= 1")
        return value

    @property
    def output_path(self) -> Path:
        """Directory where downloaded videos are written."""
        return Path(self.output_dir).expanduser() if self.output_dir else DEFAULT_OUTPUT_DIR

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build config from environment variables."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            video_model=os.getenv("VEO_MODEL", DEFAULT_VIDEO_MODEL),
            extend_model=os.getenv("VEO_EXTEND_MODEL", DEFAULT_EXTEND_MODEL),
            poll_interval_seconds=float(os.getenv("VEO_POLL_INTERVAL", "8.0")),
            poll_timeout_seconds=float(os.getenv("VEO_POLL_TIMEOUT", "1800.0")),
            poll_max_attempts=int(os.getenv("VEO_POLL_MAX_ATTEMPTS", "0")),
            max_jobs=int(os.getenv("VEO_MAX_JOBS", "50")),
            output_dir=os.getenv("VEO_OUTPUT_DIR", str(DEFAULT_OUTPUT_DIR)),
            download_timeout_seconds=float(os.getenv("VEO_DOWNLOAD_TIMEOUT", "120.0")),
            tracing_enabled=_resolve_tracing_enabled(
                os.getenv("VEO_TRACING_ENABLED", ""),
                os.getenv("MLFLOW_TRACKING_URI", ""),
            ),
            mlflow_tracking_uri=os.getenv("MLFLOW_TRACKING_URI", ""),
            mlflow_experiment_name=os.getenv("MLFLOW_EXPERIMENT_NAME", "veo-studio-mcp"),
        )


_config: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Return the global config singleton, creating it on first access.

    Loads ``~/.config/veo-studio-mcp/.env`` before reading env vars.
    Process environment always takes precedence over the config file.
    """
    global _config
    if _config is None:
        import logging

        from .dotenv import load_dotenv

        injected = load_dotenv()
        if injected:
            logging.getLogger(__name__).info(
                "Loaded %d var(s) from config: %s",
                len(injected),
                ", ".join(injected.keys()),
            )
        _config = ServerConfig.from_env()
    return _config


def reload_api_key() -> str:
    """Re-read ``GEMINI_API_KEY`` from env + config file, keeping every other setting.

    Runtime overrides made through ``update_config`` survive a key reselection.
    """
    global _config
    from .dotenv import load_dotenv

    load_dotenv()
    key = os.getenv("GEMINI_API_KEY", "")
    _config = get_config().model_copy(update={"gemini_api_key": key})
    return key


def update_config(**overrides: object) -> ServerConfig:
    """Patch the live config (used by the ``infra_configure`` tool)."""
    global _config
    cfg = get_config()
    data = cfg.model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    _config = ServerConfig(**data)
    return _config
