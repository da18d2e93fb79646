"""Services module for the Session Transcription Service.

This module exports service modules that handle core business logic
for speech recognition, segment reconciliation, recordings and retries.
"""

from src.services import audio, engine, reconciler, recording, retry, segments, transcript

__all__ = ["audio", "engine", "reconciler", "recording", "retry", "segments", "transcript"]
