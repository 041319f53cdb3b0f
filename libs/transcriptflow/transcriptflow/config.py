"""Configuration management using pydantic-settings."""

from pathlib import Path
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from transcriptflow.exceptions import ConfigurationError

_ENV_FILES = (".env", "../.env", "../../.env")

_REPO_ROOT = Path(__file__).resolve().parents[3]


def _resolve_repo_path(value: str) -> str:
    raw = str(value or "").strip()
    if not raw:
        return raw
    p = Path(raw)
    if p.is_absolute():
        return str(p)
    return str((_REPO_ROOT / p).resolve())


class TranscoderConfig(BaseSettings):
    """Transcoder (ffmpeg) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TRANSCODER_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: str = "ffmpeg"
    ffmpeg_bin: str = "ffmpeg"
    sample_rate: int = Field(default=16000, ge=8000)
    channels: int = Field(default=1, ge=1)
    # m4a copy for client playback; empty disables it
    playback_format: str = "m4a"
    playback_bitrate: str = "64k"
    timeout_s: float | None = Field(default=None, gt=0)


class TranscriberConfig(BaseSettings):
    """Speech recognition backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TRANSCRIBER_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: str = "http_speech"
    base_url: str = "https://speech.googleapis.com/v1p1beta1"
    api_key: str = ""
    model: str | None = None
    encoding: str = "LINEAR16"
    timeout: float = 60.0  # per HTTP request (seconds)
    poll_interval_s: float = Field(default=5.0, gt=0)
    enable_automatic_punctuation: bool = True
    enable_speaker_diarization: bool = False
    min_speaker_count: int = Field(default=1, ge=1)
    max_speaker_count: int = Field(default=6, ge=1)

    @model_validator(mode="after")
    def _validate_speakers(self) -> "TranscriberConfig":
        if self.max_speaker_count < self.min_speaker_count:
            raise ConfigurationError(
                "TRANSCRIBER_MAX_SPEAKER_COUNT must be >= TRANSCRIBER_MIN_SPEAKER_COUNT"
            )
        return self


class WorkerConfig(BaseSettings):
    """Trigger worker configuration."""

    model_config = SettingsConfigDict(
        env_prefix="WORKER_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    concurrency: int = Field(default=4, ge=1)
    poll_timeout_s: int = Field(default=5, ge=1)
    progress_min_percent_step: int = Field(default=5, ge=1)
    progress_min_interval_s: float = Field(default=2.0, ge=0)


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

    data_dir: str = "./data"
    log_dir: str = "./logs"
    upload_max_bytes: int = Field(default=2 * 1024 * 1024 * 1024, ge=1)

    # Job store
    job_store_backend: str = "postgres"  # "memory" | "postgres"
    statistics_key: str = "transcripts"

    # Database
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "transcriptflow"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_pool_min_size: int = Field(default=2, ge=1)
    postgres_pool_max_size: int = Field(default=10, ge=1)

    # Redis (trigger queue + live progress)
    redis_url: str = "redis://localhost:6379"

    # Media storage
    media_storage_backend: str = "s3"  # "local" | "s3"

    # S3/MinIO
    s3_endpoint: str = "http://localhost:9000"
    s3_access_key: str = "minioadmin"
    s3_secret_key: str = "minioadmin"
    s3_bucket_name: str = "transcriptflow"
    s3_presign_expires_hours: int = Field(default=24, ge=1)

    transcoder: TranscoderConfig = TranscoderConfig()
    transcriber: TranscriberConfig = TranscriberConfig()
    worker: WorkerConfig = WorkerConfig()

    # Logging
    logging: LoggingSettings = LoggingSettings()

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        self.data_dir = _resolve_repo_path(self.data_dir)
        self.log_dir = _resolve_repo_path(self.log_dir)
        backend = str(self.job_store_backend or "").strip().lower()
        if backend not in {"memory", "postgres"}:
            raise ConfigurationError(f"Unknown job store backend: {self.job_store_backend!r}")
        self.job_store_backend = backend
        for p in (self.data_dir, self.log_dir):
            Path(p).mkdir(parents=True, exist_ok=True)
        return self

    @property
    def database_url(self) -> str:
        return f"postgresql://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    @property
    def work_dir(self) -> str:
        return str(Path(self.data_dir) / "work")
