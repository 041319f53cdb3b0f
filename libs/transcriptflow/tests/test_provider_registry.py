from __future__ import annotations

import pytest

from transcriptflow.config import TranscriberConfig, TranscoderConfig
from transcriptflow.exceptions import ConfigurationError
from transcriptflow.providers import create_providers, get_transcoder, get_transcriber
from transcriptflow.providers.transcoder.ffmpeg import FFmpegTranscoder
from transcriptflow.providers.transcriber.http_speech import HTTPSpeechTranscriber
from transcriptflow.services.storage import LocalStorageService


@pytest.fixture()
def ffmpeg_path(tmp_path) -> str:
    path = tmp_path / "ffmpeg"
    path.write_text("")
    return str(path)


def test_get_transcoder_builds_ffmpeg(tmp_path, ffmpeg_path) -> None:
    config = TranscoderConfig(ffmpeg_bin=ffmpeg_path, sample_rate=8000, playback_format="")
    storage = LocalStorageService(str(tmp_path / "media"))

    transcoder = get_transcoder(config, storage=storage, work_dir=str(tmp_path / "work"))

    assert isinstance(transcoder, FFmpegTranscoder)
    assert transcoder.ffmpeg_bin == ffmpeg_path
    assert transcoder.sample_rate == 8000
    assert transcoder.playback_format is None


def test_get_transcoder_rejects_unknown_provider(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        get_transcoder(
            TranscoderConfig(provider="sox"),
            storage=LocalStorageService(str(tmp_path)),
            work_dir=str(tmp_path),
        )


@pytest.mark.parametrize("provider", ["http_speech", "Google"])
def test_get_transcriber_accepts_aliases(provider) -> None:
    config = TranscriberConfig(provider=provider, base_url="https://speech.test/v1", api_key="k")

    transcriber = get_transcriber(config, sample_rate_hertz=22050)

    assert isinstance(transcriber, HTTPSpeechTranscriber)
    assert transcriber.base_url == "https://speech.test/v1"
    assert transcriber.sample_rate_hertz == 22050


def test_get_transcriber_rejects_unknown_provider() -> None:
    with pytest.raises(ConfigurationError):
        get_transcriber(TranscriberConfig(provider="whisper"))


def test_create_providers_uses_settings(settings, ffmpeg_path) -> None:
    settings.transcoder = TranscoderConfig(ffmpeg_bin=ffmpeg_path)

    transcoder, transcriber = create_providers(settings)

    assert isinstance(transcoder, FFmpegTranscoder)
    assert isinstance(transcoder.storage, LocalStorageService)
    assert transcoder.presign_expires_s == settings.s3_presign_expires_hours * 3600
    assert str(transcoder.work_dir).startswith(settings.data_dir)
    assert transcriber.sample_rate_hertz == settings.transcoder.sample_rate
