"""Transcript log."""

from leadline.services.transcript.log import TranscriptLog

__all__ = ["TranscriptLog"]
