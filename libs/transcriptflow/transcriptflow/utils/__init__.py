"""Shared helpers (logging, subprocess, ffmpeg, audio)."""
