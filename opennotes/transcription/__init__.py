"""Transcription module for OpenNotes."""

from .base import AbstractTranscriptionProvider
from .assemblyai_backend import AssemblyAIBackend
from .orchestrator import TranscriptionOrchestrator

__all__ = [
    "AbstractTranscriptionProvider",
    "AssemblyAIBackend",
    "TranscriptionOrchestrator",
]
