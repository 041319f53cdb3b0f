"""FFmpeg binary resolution and command helpers.

Prefer the configured/system `ffmpeg`, fall back to the `imageio-ffmpeg`
bundled binary.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def resolve_ffmpeg_bin(ffmpeg_bin: str = "ffmpeg") -> str:
    ffmpeg_bin = (ffmpeg_bin or "ffmpeg").strip()

    if Path(ffmpeg_bin).exists():
        return ffmpeg_bin

    found = shutil.which(ffmpeg_bin)
    if found:
        return found

    try:
        import imageio_ffmpeg

        return str(imageio_ffmpeg.get_ffmpeg_exe())
    except Exception as exc:
        logger.warning("failed to resolve bundled ffmpeg (%s); fallback to %r", exc, ffmpeg_bin)
        return ffmpeg_bin


def normalize_args(
    ffmpeg_bin: str,
    input_path: str,
    output_path: str,
    *,
    sample_rate: int = 16000,
    channels: int = 1,
) -> list[str]:
    """Audio-only, 16-bit PCM WAV at the recognition sample rate."""
    return [
        ffmpeg_bin,
        "-hide_banner",
        "-nostdin",
        "-y",
        "-i",
        input_path,
        "-vn",
        "-acodec",
        "pcm_s16le",
        "-ar",
        str(int(sample_rate)),
        "-ac",
        str(int(channels)),
        "-f",
        "wav",
        output_path,
    ]


def playback_args(
    ffmpeg_bin: str,
    input_path: str,
    output_path: str,
    *,
    bitrate: str = "64k",
) -> list[str]:
    """AAC copy for browser playback."""
    return [
        ffmpeg_bin,
        "-hide_banner",
        "-nostdin",
        "-y",
        "-i",
        input_path,
        "-vn",
        "-c:a",
        "aac",
        "-b:a",
        str(bitrate),
        "-movflags",
        "+faststart",
        output_path,
    ]
