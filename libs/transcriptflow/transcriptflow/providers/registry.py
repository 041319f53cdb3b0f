"""Provider factory and registry."""

from __future__ import annotations

from transcriptflow.config import Settings, TranscriberConfig, TranscoderConfig
from transcriptflow.exceptions import ConfigurationError
from transcriptflow.providers.transcriber.base import Transcriber
from transcriptflow.providers.transcoder.base import Transcoder
from transcriptflow.services.storage import MediaStorage, get_media_storage


def get_transcoder(
    config: TranscoderConfig,
    *,
    storage: MediaStorage,
    work_dir: str,
    presign_expires_s: int = 24 * 3600,
) -> Transcoder:
    provider_type = str(config.provider or "ffmpeg").strip().lower()

    match provider_type:
        case "ffmpeg":
            from transcriptflow.providers.transcoder.ffmpeg import FFmpegTranscoder

            return FFmpegTranscoder(
                storage=storage,
                work_dir=work_dir,
                ffmpeg_bin=config.ffmpeg_bin,
                sample_rate=config.sample_rate,
                channels=config.channels,
                playback_format=config.playback_format,
                playback_bitrate=config.playback_bitrate,
                presign_expires_s=presign_expires_s,
                timeout_s=config.timeout_s,
            )
        case _:
            raise ConfigurationError(f"Unknown transcoder provider: {provider_type}")


def get_transcriber(config: TranscriberConfig, *, sample_rate_hertz: int = 16000) -> Transcriber:
    provider_type = str(config.provider or "http_speech").strip().lower()

    match provider_type:
        case "http_speech" | "google":
            from transcriptflow.providers.transcriber.http_speech import HTTPSpeechTranscriber

            return HTTPSpeechTranscriber(
                base_url=config.base_url,
                api_key=config.api_key,
                model=config.model,
                encoding=config.encoding,
                sample_rate_hertz=sample_rate_hertz,
                timeout=config.timeout,
                poll_interval_s=config.poll_interval_s,
                enable_automatic_punctuation=config.enable_automatic_punctuation,
                enable_speaker_diarization=config.enable_speaker_diarization,
                min_speaker_count=config.min_speaker_count,
                max_speaker_count=config.max_speaker_count,
            )
        case _:
            raise ConfigurationError(f"Unknown transcriber provider: {provider_type}")


def create_providers(settings: Settings) -> tuple[Transcoder, Transcriber]:
    """Build the configured transcoder/transcriber pair."""
    transcoder = get_transcoder(
        settings.transcoder,
        storage=get_media_storage(settings),
        work_dir=settings.work_dir,
        presign_expires_s=int(settings.s3_presign_expires_hours) * 3600,
    )
    transcriber = get_transcriber(
        settings.transcriber, sample_rate_hertz=settings.transcoder.sample_rate
    )
    return transcoder, transcriber
