"""TranscriptFlow: audio upload -> transcript job pipeline."""

__version__ = "0.1.0"
