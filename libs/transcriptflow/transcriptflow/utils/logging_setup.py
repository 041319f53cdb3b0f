"""Logging initialization helpers."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from transcriptflow.config import Settings

# Client libraries that log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "botocore", "boto3", "s3transfer", "psycopg.pool")


def _build_handlers(settings: Settings, level: int) -> list[logging.Handler]:
    formatter = logging.Formatter(
        fmt=str(settings.logging.format),
        datefmt=str(settings.logging.datefmt),
    )

    handlers: list[logging.Handler] = []
    if settings.logging.console:
        stream = logging.StreamHandler()
        stream.setLevel(level)
        stream.setFormatter(formatter)
        handlers.append(stream)

    if settings.logging.file:
        file_path = Path(str(settings.logging.file))
        if not file_path.is_absolute():
            file_path = Path(settings.log_dir) / file_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(
            file_path,
            maxBytes=int(settings.logging.max_bytes),
            backupCount=int(settings.logging.backup_count),
            encoding="utf-8",
        )
        fh.setLevel(level)
        fh.setFormatter(formatter)
        handlers.append(fh)
    return handlers


def setup_logging(settings: Settings, *, level_override: str | None = None) -> None:
    """Configure the `transcriptflow` logger tree from Settings.

    Worker and API loggers are children (`transcriptflow.worker`,
    `transcriptflow.api`), so one call covers a whole process. Framework
    loggers (e.g. uvicorn) are left alone; HTTP/S3 client chatter is capped at
    WARNING.
    """
    logger = logging.getLogger("transcriptflow")
    if getattr(logger, "_transcriptflow_configured", False):
        return

    level_name = str(level_override or settings.logging.level or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    logger.setLevel(level)
    logger.handlers = _build_handlers(settings, level)
    logger.propagate = False

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    setattr(logger, "_transcriptflow_configured", True)
