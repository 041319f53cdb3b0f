from __future__ import annotations

import wave
from pathlib import Path

import pytest

from transcriptflow.exceptions import TranscodeError
from transcriptflow.providers.transcoder import ffmpeg as ffmpeg_module
from transcriptflow.providers.transcoder.ffmpeg import FFmpegTranscoder
from transcriptflow.services.storage import LocalStorageService, source_object_key
from transcriptflow.utils.subprocess import ProcessResult


class _Progress:
    def __init__(self) -> None:
        self.values: list[int] = []

    async def report(self, progress: int, message: str) -> None:
        self.values.append(progress)


def _write_wav(path: str, *, seconds: float, rate: int = 16000) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with wave.open(path, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(rate)
        wf.writeframes(b"\x00\x00" * int(seconds * rate))


@pytest.fixture()
def media(tmp_path) -> LocalStorageService:
    return LocalStorageService(str(tmp_path / "media"))


@pytest.fixture()
def fake_ffmpeg(tmp_path) -> str:
    path = tmp_path / "bin" / "ffmpeg"
    path.parent.mkdir(parents=True)
    path.write_text("")
    return str(path)


async def _upload_source(media: LocalStorageService, tmp_path: Path) -> None:
    src = tmp_path / "upload.mp3"
    src.write_bytes(b"ID3 not really mp3")
    await media.upload_file(str(src), source_object_key("user-1", "job-1"))


@pytest.mark.asyncio
async def test_transcode_normalizes_uploads_and_renders_playback(
    monkeypatch, tmp_path, media, fake_ffmpeg
) -> None:
    await _upload_source(media, tmp_path)
    commands: list[list[str]] = []

    async def fake_run(args, *, timeout_s=None):  # noqa: ANN001
        commands.append(list(args))
        out = args[-1]
        if out.endswith(".wav"):
            _write_wav(out, seconds=2.5)
        else:
            Path(out).write_bytes(b"aac")
        return ProcessResult(args=tuple(args), returncode=0, stderr=b"")

    monkeypatch.setattr(ffmpeg_module, "run_subprocess", fake_run)
    work_dir = tmp_path / "work"
    transcoder = FFmpegTranscoder(storage=media, work_dir=str(work_dir), ffmpeg_bin=fake_ffmpeg)
    progress = _Progress()

    output = await transcoder.transcode("job-1", "user-1", progress_reporter=progress)

    assert output.duration == pytest.approx(2.5)
    assert output.audio_uri.startswith("file://")
    assert output.audio_uri.endswith("media/user-1/job-1/normalized.wav")
    assert output.playback_url is not None
    assert output.playback_url.endswith("media/user-1/job-1/playback.m4a")
    assert await media.exists("media/user-1/job-1/normalized.wav")
    assert progress.values == [20, 60, 80, 100]

    normalize = commands[0]
    assert normalize[0] == fake_ffmpeg
    assert normalize[normalize.index("-ar") + 1] == "16000"
    assert normalize[normalize.index("-ac") + 1] == "1"
    assert not (work_dir / "job-1").exists()


@pytest.mark.asyncio
async def test_transcode_without_playback_format_skips_render(
    monkeypatch, tmp_path, media, fake_ffmpeg
) -> None:
    await _upload_source(media, tmp_path)
    calls = {"n": 0}

    async def fake_run(args, *, timeout_s=None):  # noqa: ANN001
        calls["n"] += 1
        _write_wav(args[-1], seconds=1.0)
        return ProcessResult(args=tuple(args), returncode=0, stderr=b"")

    monkeypatch.setattr(ffmpeg_module, "run_subprocess", fake_run)
    transcoder = FFmpegTranscoder(
        storage=media, work_dir=str(tmp_path / "work"), ffmpeg_bin=fake_ffmpeg, playback_format=""
    )

    output = await transcoder.transcode("job-1", "user-1")

    assert output.playback_url is None
    assert calls["n"] == 1


@pytest.mark.asyncio
async def test_missing_source_raises_transcode_error(tmp_path, media, fake_ffmpeg) -> None:
    transcoder = FFmpegTranscoder(storage=media, work_dir=str(tmp_path / "work"), ffmpeg_bin=fake_ffmpeg)

    with pytest.raises(TranscodeError) as excinfo:
        await transcoder.transcode("job-1", "user-1")

    assert "source download failed" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)


@pytest.mark.asyncio
async def test_ffmpeg_failure_carries_stderr_tail(monkeypatch, tmp_path, media, fake_ffmpeg) -> None:
    await _upload_source(media, tmp_path)

    async def fake_run(args, *, timeout_s=None):  # noqa: ANN001
        return ProcessResult(args=tuple(args), returncode=1, stderr=b"Invalid data found when processing input")

    monkeypatch.setattr(ffmpeg_module, "run_subprocess", fake_run)
    transcoder = FFmpegTranscoder(storage=media, work_dir=str(tmp_path / "work"), ffmpeg_bin=fake_ffmpeg)

    with pytest.raises(TranscodeError) as excinfo:
        await transcoder.transcode("job-1", "user-1")

    assert "code=1" in str(excinfo.value)
    assert "Invalid data found" in str(excinfo.value)
    assert not (tmp_path / "work" / "job-1").exists()


@pytest.mark.asyncio
async def test_unreadable_output_raises_transcode_error(monkeypatch, tmp_path, media, fake_ffmpeg) -> None:
    await _upload_source(media, tmp_path)

    async def fake_run(args, *, timeout_s=None):  # noqa: ANN001
        Path(args[-1]).write_bytes(b"garbage")
        return ProcessResult(args=tuple(args), returncode=0, stderr=b"")

    monkeypatch.setattr(ffmpeg_module, "run_subprocess", fake_run)
    transcoder = FFmpegTranscoder(storage=media, work_dir=str(tmp_path / "work"), ffmpeg_bin=fake_ffmpeg)

    with pytest.raises(TranscodeError) as excinfo:
        await transcoder.transcode("job-1", "user-1")

    assert "unreadable normalized audio" in str(excinfo.value)


@pytest.mark.asyncio
async def test_missing_binary_is_reported(monkeypatch, tmp_path, media, fake_ffmpeg) -> None:
    await _upload_source(media, tmp_path)

    async def fake_run(args, *, timeout_s=None):  # noqa: ANN001
        raise FileNotFoundError(args[0])

    monkeypatch.setattr(ffmpeg_module, "run_subprocess", fake_run)
    transcoder = FFmpegTranscoder(storage=media, work_dir=str(tmp_path / "work"), ffmpeg_bin=fake_ffmpeg)

    with pytest.raises(TranscodeError) as excinfo:
        await transcoder.transcode("job-1", "user-1")

    assert "ffmpeg binary not found" in str(excinfo.value)
