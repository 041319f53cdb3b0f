"""Audio file helpers."""

from __future__ import annotations

import wave


def wav_duration_seconds(path: str) -> float:
    """Duration of a PCM WAV file from its header."""
    try:
        with wave.open(str(path), "rb") as wf:
            frames = wf.getnframes()
            rate = wf.getframerate()
    except wave.Error as exc:
        raise ValueError(f"not a WAV file: {path}: {exc}") from exc
    if rate <= 0:
        raise ValueError(f"invalid sample rate in {path}: {rate}")
    return frames / float(rate)
