"""FFmpeg-based transcoder."""

from __future__ import annotations

import asyncio
import logging
import shutil
import subprocess
from pathlib import Path

from transcriptflow.exceptions import TranscodeError
from transcriptflow.pipeline.context import ProgressReporter
from transcriptflow.providers.transcoder.base import TranscodeOutput, Transcoder
from transcriptflow.services.storage import (
    MediaStorage,
    normalized_object_key,
    playback_object_key,
    source_object_key,
)
from transcriptflow.utils.audio import wav_duration_seconds
from transcriptflow.utils.ffmpeg import normalize_args, playback_args, resolve_ffmpeg_bin
from transcriptflow.utils.subprocess import run_subprocess

logger = logging.getLogger(__name__)


class FFmpegTranscoder(Transcoder):
    """Download the uploaded original, normalize it with ffmpeg, upload the result."""

    provider = "ffmpeg"

    def __init__(
        self,
        *,
        storage: MediaStorage,
        work_dir: str,
        ffmpeg_bin: str = "ffmpeg",
        sample_rate: int = 16000,
        channels: int = 1,
        playback_format: str | None = "m4a",
        playback_bitrate: str = "64k",
        presign_expires_s: int = 24 * 3600,
        timeout_s: float | None = None,
    ) -> None:
        self.storage = storage
        self.work_dir = Path(work_dir)
        self.ffmpeg_bin = resolve_ffmpeg_bin(ffmpeg_bin)
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.playback_format = str(playback_format or "").strip().lstrip(".") or None
        self.playback_bitrate = str(playback_bitrate or "64k")
        self.presign_expires_s = int(presign_expires_s)
        self.timeout_s = timeout_s

    async def _run_ffmpeg(self, args: list[str]) -> None:
        try:
            result = await run_subprocess(args, timeout_s=self.timeout_s)
        except FileNotFoundError as exc:
            raise TranscodeError(
                self.provider,
                f"ffmpeg binary not found: {self.ffmpeg_bin}. "
                "Install ffmpeg (or `imageio-ffmpeg`), or set TRANSCODER_FFMPEG_BIN.",
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise TranscodeError(self.provider, f"ffmpeg timed out after {self.timeout_s}s") from exc
        if not result.ok:
            raise TranscodeError(
                self.provider,
                f"ffmpeg failed (code={result.returncode}): {result.stderr_tail()}",
            )

    async def _report(self, reporter: ProgressReporter | None, pct: int, message: str) -> None:
        if reporter is not None:
            await reporter.report(pct, message)

    async def transcode(
        self,
        job_id: str,
        user_id: str,
        progress_reporter: ProgressReporter | None = None,
    ) -> TranscodeOutput:
        job_dir = self.work_dir / str(job_id)
        source_path = job_dir / "original"
        wav_path = job_dir / "normalized.wav"
        job_dir.mkdir(parents=True, exist_ok=True)
        try:
            try:
                await self.storage.download_file(source_object_key(user_id, job_id), str(source_path))
            except Exception as exc:
                raise TranscodeError(self.provider, f"source download failed: {exc}") from exc
            await self._report(progress_reporter, 20, "source downloaded")

            await self._run_ffmpeg(
                normalize_args(
                    self.ffmpeg_bin,
                    str(source_path),
                    str(wav_path),
                    sample_rate=self.sample_rate,
                    channels=self.channels,
                )
            )
            try:
                duration = wav_duration_seconds(str(wav_path))
            except (OSError, EOFError, ValueError) as exc:
                raise TranscodeError(self.provider, f"unreadable normalized audio: {exc}") from exc
            await self._report(progress_reporter, 60, "audio normalized")

            try:
                audio_uri = await self.storage.upload_file(
                    str(wav_path), normalized_object_key(user_id, job_id)
                )
            except Exception as exc:
                raise TranscodeError(self.provider, f"normalized upload failed: {exc}") from exc
            await self._report(progress_reporter, 80, "normalized audio uploaded")

            playback_url = await self._render_playback(job_id, user_id, wav_path)
            await self._report(progress_reporter, 100, "transcoded")
        finally:
            await asyncio.to_thread(shutil.rmtree, job_dir, True)

        logger.info(
            "transcoded (job_id=%s, duration_s=%.2f, playback=%s)",
            job_id,
            duration,
            bool(playback_url),
        )
        return TranscodeOutput(duration=duration, audio_uri=audio_uri, playback_url=playback_url)

    async def _render_playback(self, job_id: str, user_id: str, wav_path: Path) -> str | None:
        if not self.playback_format:
            return None
        out_path = wav_path.with_name(f"playback.{self.playback_format}")
        await self._run_ffmpeg(
            playback_args(self.ffmpeg_bin, str(wav_path), str(out_path), bitrate=self.playback_bitrate)
        )
        key = playback_object_key(user_id, job_id, self.playback_format)
        try:
            await self.storage.upload_file(str(out_path), key)
            return await self.storage.get_presigned_url(key, expires_in=self.presign_expires_s)
        except Exception as exc:
            raise TranscodeError(self.provider, f"playback upload failed: {exc}") from exc
