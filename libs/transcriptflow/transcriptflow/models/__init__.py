"""Core data models for TranscriptFlow."""

from transcriptflow.models.error import ErrorRecord
from transcriptflow.models.job import (
    ALLOWED_PREDECESSORS,
    PERCENT_STAGES,
    STAGE_ORDER,
    TERMINAL_STAGES,
    Job,
    JobStage,
    RecognitionMetadata,
    SpeechContext,
    can_transition,
)
from transcriptflow.models.statistics import TranscriptSummary, UsageStatistics
from transcriptflow.models.transcript import (
    RecognitionAlternative,
    RecognitionResult,
    ResultFragment,
    Word,
    parse_time_offset,
    start_time_seconds,
)

__all__ = [
    "ALLOWED_PREDECESSORS",
    "ErrorRecord",
    "Job",
    "JobStage",
    "PERCENT_STAGES",
    "RecognitionAlternative",
    "RecognitionMetadata",
    "RecognitionResult",
    "ResultFragment",
    "STAGE_ORDER",
    "SpeechContext",
    "TERMINAL_STAGES",
    "TranscriptSummary",
    "UsageStatistics",
    "Word",
    "can_transition",
    "parse_time_offset",
    "start_time_seconds",
]
