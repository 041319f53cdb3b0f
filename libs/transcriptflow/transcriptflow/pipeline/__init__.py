"""Pipeline orchestration.

Adapters import `transcriptflow.pipeline.context` for type hints. Keep imports
lazy to avoid circular imports between `transcriptflow.pipeline` and
`transcriptflow.providers`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from transcriptflow.pipeline.orchestrator import PipelineOrchestrator
    from transcriptflow.pipeline.result_writer import ResultWriter

__all__ = ["PipelineOrchestrator", "ResultWriter"]


def __getattr__(name: str) -> Any:
    if name == "PipelineOrchestrator":
        from transcriptflow.pipeline.orchestrator import PipelineOrchestrator

        return PipelineOrchestrator
    if name == "ResultWriter":
        from transcriptflow.pipeline.result_writer import ResultWriter

        return ResultWriter
    raise AttributeError(name)
