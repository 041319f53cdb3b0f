"""Long-running speech recognition over HTTP (Google Speech REST style)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from transcriptflow.error_codes import ErrorCode
from transcriptflow.exceptions import TranscribeError
from transcriptflow.models.job import RecognitionMetadata
from transcriptflow.models.transcript import RecognitionResult
from transcriptflow.pipeline.context import ProgressReporter
from transcriptflow.providers.transcriber.base import Transcriber

logger = logging.getLogger(__name__)

DEFAULT_SPEECH_BASE_URL = "https://speech.googleapis.com/v1p1beta1"


class _RetryableTranscribeError(TranscribeError):
    pass


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    wait_s = state.next_action.sleep if state.next_action else None
    logger.warning(
        "speech poll retrying (attempt=%s, wait_s=%s, error=%s)",
        state.attempt_number,
        wait_s,
        exc,
    )


def _format_http_error(response: httpx.Response) -> str:
    detail = response.text.strip()
    if len(detail) > 2000:
        detail = detail[:2000] + "…"
    if detail:
        return f"HTTP {response.status_code} {response.reason_phrase}: {detail}"
    return f"HTTP {response.status_code} {response.reason_phrase}"


def build_recognition_config(
    metadata: RecognitionMetadata,
    *,
    encoding: str = "LINEAR16",
    sample_rate_hertz: int = 16000,
    model: str | None = None,
    enable_automatic_punctuation: bool = True,
    enable_speaker_diarization: bool = False,
    min_speaker_count: int = 1,
    max_speaker_count: int = 6,
) -> dict[str, Any]:
    """Recognition request config for the job's metadata.

    The first language code is primary; the rest are alternatives.
    """
    if not metadata.language_codes:
        raise TranscribeError("http_speech", "languageCodes missing")

    config: dict[str, Any] = {
        "encoding": encoding,
        "sampleRateHertz": int(sample_rate_hertz),
        "languageCode": metadata.language_codes[0],
        "enableWordTimeOffsets": True,
        "enableWordConfidence": True,
        "enableAutomaticPunctuation": bool(enable_automatic_punctuation),
    }
    if len(metadata.language_codes) > 1:
        config["alternativeLanguageCodes"] = list(metadata.language_codes[1:])
    if model:
        config["model"] = model
    if enable_speaker_diarization:
        config["diarizationConfig"] = {
            "enableSpeakerDiarization": True,
            "minSpeakerCount": int(min_speaker_count),
            "maxSpeakerCount": int(max_speaker_count),
        }
    if metadata.speech_contexts:
        config["speechContexts"] = [c.to_dict() for c in metadata.speech_contexts if c.phrases]

    recognition_metadata = {
        k: v
        for k, v in metadata.to_dict().items()
        if k not in {"languageCodes", "speechContexts"}
    }
    if recognition_metadata:
        config["metadata"] = recognition_metadata
    return config


class HTTPSpeechTranscriber(Transcriber):
    """Submit a long-running recognize request and poll the operation until done."""

    provider = "http_speech"

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_SPEECH_BASE_URL,
        api_key: str = "",
        model: str | None = None,
        encoding: str = "LINEAR16",
        sample_rate_hertz: int = 16000,
        timeout: float = 60.0,
        poll_interval_s: float = 5.0,
        enable_automatic_punctuation: bool = True,
        enable_speaker_diarization: bool = False,
        min_speaker_count: int = 1,
        max_speaker_count: int = 6,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (str(base_url or "").strip() or DEFAULT_SPEECH_BASE_URL).rstrip("/")
        self.api_key = api_key
        self.model = model
        self.encoding = encoding
        self.sample_rate_hertz = int(sample_rate_hertz)
        self.timeout = float(timeout)
        self.poll_interval_s = max(0.0, float(poll_interval_s))
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.enable_speaker_diarization = enable_speaker_diarization
        self.min_speaker_count = int(min_speaker_count)
        self.max_speaker_count = int(max_speaker_count)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _params(self) -> dict[str, str]:
        return {"key": self.api_key} if self.api_key else {}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def _submit(self, audio_uri: str, metadata: RecognitionMetadata) -> str:
        payload = {
            "config": build_recognition_config(
                metadata,
                encoding=self.encoding,
                sample_rate_hertz=self.sample_rate_hertz,
                model=self.model,
                enable_automatic_punctuation=self.enable_automatic_punctuation,
                enable_speaker_diarization=self.enable_speaker_diarization,
                min_speaker_count=self.min_speaker_count,
                max_speaker_count=self.max_speaker_count,
            ),
            "audio": {"uri": audio_uri},
        }
        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.base_url}/speech:longrunningrecognize",
                params=self._params(),
                json=payload,
            )
        except httpx.HTTPError as exc:
            raise TranscribeError(self.provider, f"submit failed: {exc}") from exc
        if response.status_code >= 400:
            raise TranscribeError(self.provider, _format_http_error(response))
        data = self._decode(response, "submit")
        name = str(data.get("name") or "").strip()
        if not name:
            raise TranscribeError(self.provider, "operation name missing in submit response")
        return name

    @retry(
        retry=retry_if_exception_type(_RetryableTranscribeError),
        stop=stop_after_attempt(5),
        wait=wait_exponential(min=1, max=10),
        before_sleep=_log_retry,
        reraise=True,
    )
    async def _get_operation(self, name: str) -> dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.get(f"{self.base_url}/operations/{name}", params=self._params())
        except httpx.TransportError as exc:
            raise _RetryableTranscribeError(self.provider, f"poll failed: {exc}") from exc
        if response.status_code == 429 or response.status_code >= 500:
            raise _RetryableTranscribeError(self.provider, _format_http_error(response))
        if response.status_code >= 400:
            raise TranscribeError(self.provider, _format_http_error(response))
        return self._decode(response, "operation")

    def _decode(self, response: httpx.Response, what: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise TranscribeError(self.provider, f"invalid JSON in {what} response") from exc
        if not isinstance(data, dict):
            raise TranscribeError(self.provider, f"{what} response is not an object")
        return data

    async def _poll(self, name: str) -> dict[str, Any]:
        try:
            return await self._get_operation(name)
        except _RetryableTranscribeError as exc:
            raise TranscribeError(self.provider, f"poll gave up: {exc.message}") from exc

    async def transcribe(
        self,
        job_id: str,
        audio_uri: str,
        metadata: RecognitionMetadata,
        progress_reporter: ProgressReporter | None = None,
    ) -> list[RecognitionResult]:
        name = await self._submit(audio_uri, metadata)
        logger.info("speech operation submitted (job_id=%s, operation=%s)", job_id, name)

        while True:
            operation = await self._poll(name)
            progress = (operation.get("metadata") or {}).get("progressPercent")
            if progress_reporter is not None and isinstance(progress, (int, float)):
                await progress_reporter.report(int(progress), "transcribing")
            if operation.get("done"):
                break
            await asyncio.sleep(self.poll_interval_s)

        error = operation.get("error")
        if isinstance(error, dict):
            raise TranscribeError(
                self.provider,
                f"operation failed (code={error.get('code')}): {error.get('message') or 'unknown error'}",
                error_code=ErrorCode.TRANSCRIBE_FAILED,
            )

        raw_results = (operation.get("response") or {}).get("results") or []
        results = [RecognitionResult.from_dict(r) for r in raw_results if isinstance(r, dict)]
        logger.info("speech operation done (job_id=%s, results=%d)", job_id, len(results))
        return results

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
