"""Canonical error codes stored on failed jobs."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    UNKNOWN = "UNKNOWN"

    VALIDATION_FAILED = "VALIDATION_FAILED"
    TRANSCODE_FAILED = "TRANSCODE_FAILED"
    TRANSCRIBE_FAILED = "TRANSCRIBE_FAILED"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"


def error_code_value(code: ErrorCode | str | None) -> str:
    if isinstance(code, ErrorCode):
        return code.value
    raw = str(code or "").strip()
    return raw or ErrorCode.UNKNOWN.value
