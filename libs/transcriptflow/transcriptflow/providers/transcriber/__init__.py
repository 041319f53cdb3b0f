from transcriptflow.providers.transcriber.base import Transcriber

__all__ = ["Transcriber"]
