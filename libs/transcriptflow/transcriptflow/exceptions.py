"""TranscriptFlow exception hierarchy."""

from __future__ import annotations

from transcriptflow.error_codes import ErrorCode


class TranscriptFlowError(Exception):
    """Base error for TranscriptFlow."""

    error_code: ErrorCode | str = ErrorCode.UNKNOWN


class ConfigurationError(TranscriptFlowError):
    """Raised when configuration is invalid."""


class ValidationError(TranscriptFlowError):
    """Raised when a job lacks a field required before processing starts."""

    error_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"{field} missing")
        self.field = field


class ProviderError(TranscriptFlowError):
    """Raised when an external provider call fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        if error_code is not None:
            self.error_code = error_code


class TranscodeError(ProviderError):
    """Raised when the transcoder cannot produce normalized audio."""

    error_code = ErrorCode.TRANSCODE_FAILED


class TranscribeError(ProviderError):
    """Raised when the recognition backend fails or rejects the request."""

    error_code = ErrorCode.TRANSCRIBE_FAILED


class PersistenceError(TranscriptFlowError):
    """Raised when a job store read or write fails."""

    error_code = ErrorCode.PERSISTENCE_FAILED


class JobNotFoundError(PersistenceError):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"job not found: {job_id}")
        self.job_id = job_id


class StageTransitionError(PersistenceError):
    """Raised when a stage write would break the monotonic stage order."""

    def __init__(self, job_id: str, current: str, target: str) -> None:
        super().__init__(f"illegal stage transition (job_id={job_id}, {current} -> {target})")
        self.job_id = job_id
        self.current = current
        self.target = target
