"""Persists transcripts and summaries as timestamp-paired files."""

import json
import logging
import os
import tempfile
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..models.audio import BinaryArtifact
from ..models.session import ArtifactPair
from ..models.summary import Summary
from ..models.transcription import Transcript, Utterance, Word

logger = logging.getLogger(__name__)

TRANSCRIPT_SUFFIX = "-transcript.json"
SUMMARY_SUFFIX = "-summary.md"
TEMP_AUDIO_PREFIX = "open-notes-"


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp safe for filenames, e.g. 2024-01-01T00-00-00-000Z."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H-%M-%S-") + f"{moment.microsecond // 1000:03d}Z"


def summary_path_for(transcript_path: Union[str, Path]) -> Path:
    """Derive the summary path by replacing the transcript suffix."""
    transcript_path = Path(transcript_path)
    name = transcript_path.name
    if not name.endswith(TRANSCRIPT_SUFFIX) or name == TRANSCRIPT_SUFFIX:
        raise ValueError(f"Not a transcript file: {transcript_path}")
    prefix = name[:-len(TRANSCRIPT_SUFFIX)]
    return transcript_path.with_name(prefix + SUMMARY_SUFFIX)


def render_summary_markdown(summary: Summary) -> str:
    lines = ["# Summary", "", f"**Context:** {summary.context}", ""]
    if summary.participants:
        lines += ["## Participants", ""] + [f"- {p}" for p in summary.participants] + [""]
    lines += [summary.summary_markdown.strip(), ""]
    if summary.key_points:
        lines += ["## Key Points", ""] + [f"- {p}" for p in summary.key_points] + [""]
    if summary.action_items:
        lines += ["## Action Items", ""] + [f"- [ ] {item}" for item in summary.action_items] + [""]
    lines += ["---", f"*Generated at {summary.generated_at} for transcript {summary.transcript_id}*", ""]
    return "\n".join(lines)


class ArtifactStore:
    """Writes transcript/summary pairs and temporary audio artifacts."""

    def __init__(self, data_dir: Union[str, Path], temp_dir: Optional[Union[str, Path]] = None,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        """Initialize artifact store.

        Args:
            data_dir: Directory transcripts and summaries are written to
            temp_dir: Directory for temporary audio files (system temp by default)
            clock: Source of the timestamp used in filenames
        """
        self.data_dir = Path(data_dir)
        self.temp_dir = Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())
        self.clock = clock

        logger.info(f"ArtifactStore initialized with data_dir: {self.data_dir}")

    def ensure_directory(self, directory: Optional[Path] = None) -> Path:
        """Create the directory if it is missing; reuse it otherwise."""
        directory = directory or self.data_dir
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def _write_atomic(self, path: Path, content: Union[str, bytes]) -> None:
        """Write to a sibling temp file, then rename over the target."""
        mode = "wb" if isinstance(content, bytes) else "w"
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            if mode == "wb":
                with os.fdopen(fd, mode) as f:
                    f.write(content)
            else:
                with os.fdopen(fd, mode, encoding="utf-8") as f:
                    f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def save_temp_audio(self, artifact: BinaryArtifact) -> Path:
        """Save the encoded recording to the temp directory and return its path."""
        self.ensure_directory(self.temp_dir)
        path = self.temp_dir / f"{TEMP_AUDIO_PREFIX}{format_timestamp(self.clock())}.{artifact.extension}"
        self._write_atomic(path, artifact.data)
        logger.info(f"Audio saved to: {path} ({len(artifact.data)} bytes)")
        return path

    def cleanup_temp_file(self, path: Union[str, Path]) -> bool:
        """Delete a temporary file. Failures are logged, never raised."""
        try:
            Path(path).unlink()
            logger.debug(f"Removed temp file: {path}")
            return True
        except OSError as e:
            logger.error(f"Failed to cleanup temp file {path}: {e}")
            return False

    def save_transcript(self, transcript: Transcript, metadata: Optional[Dict[str, Any]] = None) -> Path:
        """Save a transcript as ``<timestamp>-transcript.json``."""
        self.ensure_directory()
        saved_at = self.clock()
        path = self.data_dir / f"{format_timestamp(saved_at)}{TRANSCRIPT_SUFFIX}"

        data = asdict(transcript)
        data["saved_at"] = saved_at.isoformat()
        data["metadata"] = metadata or {}

        self._write_atomic(path, json.dumps(data, indent=2, ensure_ascii=False))
        logger.info(f"Transcript saved to: {path}")
        return path

    def save_summary(self, summary: Summary, transcript_path: Union[str, Path]) -> Path:
        """Save a summary next to its transcript, sharing the timestamp prefix."""
        path = summary_path_for(transcript_path)
        self.ensure_directory(path.parent)
        self._write_atomic(path, render_summary_markdown(summary))
        logger.info(f"Summary saved to: {path}")
        return path

    def load_transcript(self, path: Union[str, Path]) -> Transcript:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return Transcript(
            id=data["id"],
            text=data.get("text", ""),
            confidence=data.get("confidence", 0.0),
            duration_seconds=data.get("duration_seconds", 0.0),
            utterances=[Utterance(**u) for u in data.get("utterances", [])],
            words=[Word(**w) for w in data.get("words", [])],
        )

    def list_artifact_pairs(self) -> List[ArtifactPair]:
        """Rebuild transcript/summary pairs from filenames, oldest first."""
        if not self.data_dir.exists():
            return []

        pairs = []
        for transcript_path in sorted(self.data_dir.glob(f"*{TRANSCRIPT_SUFFIX}")):
            try:
                summary_path = summary_path_for(transcript_path)
            except ValueError:
                logger.warning(f"Skipping unrecognized file: {transcript_path.name}")
                continue
            pairs.append(ArtifactPair(
                prefix=transcript_path.name[:-len(TRANSCRIPT_SUFFIX)],
                transcript_path=transcript_path,
                summary_path=summary_path if summary_path.exists() else None,
            ))
        logger.debug(f"Found {len(pairs)} transcripts")
        return pairs
