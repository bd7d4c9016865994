"""Persistence of transcripts, summaries and temporary audio."""

from .artifact_store import ArtifactStore, format_timestamp, summary_path_for

__all__ = ["ArtifactStore", "format_timestamp", "summary_path_for"]
