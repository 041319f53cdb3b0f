"""Structured failure record stored on failed jobs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from transcriptflow.error_codes import error_code_value

_MAX_CAUSE_DEPTH = 5


@dataclass
class ErrorRecord:
    kind: str
    message: str
    code: str
    cause: ErrorRecord | None = None

    @classmethod
    def from_exception(cls, exc: BaseException, *, _depth: int = 0) -> "ErrorRecord":
        """Capture an exception and its cause chain.

        Explicit causes (`raise ... from exc`) win over implicit context; a
        suppressed context (`from None`) ends the chain.
        """
        nested = exc.__cause__
        if nested is None and not exc.__suppress_context__:
            nested = exc.__context__

        cause: ErrorRecord | None = None
        if nested is not None and _depth < _MAX_CAUSE_DEPTH:
            cause = cls.from_exception(nested, _depth=_depth + 1)

        return cls(
            kind=type(exc).__name__,
            message=str(exc),
            code=error_code_value(getattr(exc, "error_code", None)),
            cause=cause,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "kind": self.kind,
            "message": self.message,
            "code": self.code,
        }
        if self.cause is not None:
            out["cause"] = self.cause.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorRecord":
        cause_raw = data.get("cause")
        return cls(
            kind=str(data.get("kind") or "Exception"),
            message=str(data.get("message") or ""),
            code=error_code_value(data.get("code")),
            cause=cls.from_dict(cause_raw) if isinstance(cause_raw, dict) else None,
        )
