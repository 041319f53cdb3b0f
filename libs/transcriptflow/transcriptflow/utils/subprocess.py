"""Run external tools (ffmpeg) from async code.

Commands go through `subprocess.run()` in a worker thread rather than
`asyncio.create_subprocess_exec()`; child watchers are unreliable in some
runtimes and `.communicate()` can hang.
"""

from __future__ import annotations

import asyncio
import subprocess
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class ProcessResult:
    args: tuple[str, ...]
    returncode: int
    stderr: bytes = b""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stderr_tail(self, max_chars: int = 2000) -> str:
        text = self.stderr.decode(errors="ignore").strip()
        return text[-max_chars:]


async def run_subprocess(args: Sequence[str], *, timeout_s: float | None = None) -> ProcessResult:
    """Run a command to completion; stdout is discarded, stderr kept for error messages.

    Raises FileNotFoundError for a missing binary and subprocess.TimeoutExpired
    when `timeout_s` elapses.
    """
    cmd = tuple(str(a) for a in args)

    def _run() -> subprocess.CompletedProcess[bytes]:
        return subprocess.run(
            list(cmd),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            check=False,
            timeout=timeout_s,
        )

    cp = await asyncio.to_thread(_run)
    return ProcessResult(args=cmd, returncode=int(cp.returncode), stderr=cp.stderr or b"")
