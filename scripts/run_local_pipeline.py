from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import uuid
from pathlib import Path

from transcriptflow.config import Settings
from transcriptflow.models.job import Job, RecognitionMetadata, SpeechContext
from transcriptflow.pipeline import PipelineOrchestrator
from transcriptflow.providers import create_providers
from transcriptflow.services.storage import get_media_storage, source_object_key
from transcriptflow.storage import create_job_store
from transcriptflow.utils.logging_setup import setup_logging


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the TranscriptFlow pipeline on a local media file.")
    parser.add_argument("--media", required=True, help="Path to local audio/video file")
    parser.add_argument("--user-id", default="local", help="Owner id")
    parser.add_argument("--job-id", default=None, help="Job id (defaults to random uuid)")
    parser.add_argument(
        "--language",
        action="append",
        dest="languages",
        default=None,
        help="Language code; repeat for alternatives (first is primary)",
    )
    parser.add_argument("--phrase", action="append", default=None, help="Speech context phrase hint")
    parser.add_argument(
        "--store",
        choices=["memory", "postgres"],
        default=None,
        help="Override JOB_STORE_BACKEND",
    )
    parser.add_argument("--print-results", action="store_true", help="Print stored fragments as JSON")
    return parser.parse_args()


async def _run() -> int:
    args = _parse_args()
    media_path = Path(args.media)
    if not media_path.exists():
        raise SystemExit(f"Media not found: {media_path}")

    settings = Settings()
    if args.store is not None:
        settings.job_store_backend = args.store
    setup_logging(settings)

    job_id = str(args.job_id or uuid.uuid4().hex)
    user_id = str(args.user_id)
    mime_type = mimetypes.guess_type(media_path.name)[0] or "application/octet-stream"

    storage = get_media_storage(settings)
    await storage.upload_file(str(media_path), source_object_key(user_id, job_id))

    store = await create_job_store(settings)
    transcoder, transcriber = create_providers(settings)
    try:
        job = Job(
            id=job_id,
            user_id=user_id,
            metadata=RecognitionMetadata(
                language_codes=list(args.languages or ["en-US"]),
                original_mime_type=mime_type,
                speech_contexts=[SpeechContext(phrases=list(args.phrase))] if args.phrase else [],
            ),
        )
        await store.create_job(job)

        orchestrator = PipelineOrchestrator(
            store,
            transcoder,
            transcriber,
            progress_min_percent_step=settings.worker.progress_min_percent_step,
            progress_min_interval_s=settings.worker.progress_min_interval_s,
        )
        final = await orchestrator.run(job_id)
        if final is None:
            final = await store.get_job(job_id)

        print(f"job_id={job_id} stage={final.stage.value if final else 'missing'} duration={final.duration if final else None}")
        if args.print_results:
            fragments = await store.list_result_fragments(job_id)
            print(json.dumps([f.to_dict() for f in fragments], ensure_ascii=False, indent=2))
        stats = await store.get_usage_statistics()
        print(f"statistics duration={stats.duration:.2f} words={stats.words}")
    finally:
        await transcriber.close()
        await transcoder.close()
        await store.close()
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
