from transcriptflow.providers.transcoder.base import TranscodeOutput, Transcoder

__all__ = ["TranscodeOutput", "Transcoder"]
