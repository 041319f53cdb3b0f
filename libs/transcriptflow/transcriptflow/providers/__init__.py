"""Provider abstractions for external services."""

from transcriptflow.providers.registry import create_providers, get_transcoder, get_transcriber

__all__ = ["create_providers", "get_transcoder", "get_transcriber"]
