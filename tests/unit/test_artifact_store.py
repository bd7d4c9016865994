"""Unit tests for ArtifactStore."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from opennotes.models import BinaryArtifact, Summary
from opennotes.storage.artifact_store import (
    ArtifactStore,
    format_timestamp,
    render_summary_markdown,
    summary_path_for,
)


@pytest.fixture
def summary():
    return Summary(
        id="s-1",
        transcript_id="job-123",
        context="Weekly sync",
        summary_markdown="## Overview\nThe team met.",
        generated_at="2024-01-01T00:05:00+00:00",
        participants=["You (Host)", "Participant A"],
        key_points=["Kickoff"],
        action_items=["Send notes"],
    )


@pytest.mark.unit
class TestNaming:
    """Test cases for the filename pairing convention."""

    def test_format_timestamp(self):
        moment = datetime(2024, 3, 5, 14, 7, 9, 123456, tzinfo=timezone.utc)

        assert format_timestamp(moment) == "2024-03-05T14-07-09-123Z"

    def test_summary_path_replaces_suffix(self):
        path = summary_path_for("/X/2024-01-01T00-00-00-000Z-transcript.json")

        assert path == Path("/X/2024-01-01T00-00-00-000Z-summary.md")

    @pytest.mark.parametrize("bad", ["/X/notes.json", "/X/2024-01-01-transcript.txt", "/X/-transcript.json"])
    def test_summary_path_rejects_other_files(self, bad):
        with pytest.raises(ValueError):
            summary_path_for(bad)


@pytest.mark.unit
class TestArtifactStore:
    """Test cases for ArtifactStore."""

    def test_initialization_does_not_touch_disk(self, temp_data_dir):
        store = ArtifactStore(Path(temp_data_dir) / "OpenNotes")

        assert not store.data_dir.exists()

    def test_ensure_directory_is_idempotent(self, store):
        assert store.ensure_directory() == store.data_dir
        assert store.ensure_directory() == store.data_dir
        assert store.data_dir.is_dir()

    def test_save_transcript(self, store, sample_transcript):
        path = store.save_transcript(sample_transcript, metadata={"mime_type": "audio/wav"})

        assert path.name == "2024-01-01T00-00-00-000Z-transcript.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["id"] == "job-123"
        assert data["utterances"][0]["speaker_id"] == "1A"
        assert data["metadata"] == {"mime_type": "audio/wav"}
        assert data["saved_at"].startswith("2024-01-01T00:00:00")

    def test_save_summary_pairs_with_transcript(self, store, sample_transcript, summary):
        transcript_path = store.save_transcript(sample_transcript)

        summary_path = store.save_summary(summary, transcript_path)

        assert str(summary_path).endswith("2024-01-01T00-00-00-000Z-summary.md")
        assert summary_path.parent == transcript_path.parent
        content = summary_path.read_text(encoding="utf-8")
        assert "**Context:** Weekly sync" in content
        assert "- [ ] Send notes" in content

    def test_save_summary_for_foreign_directory(self, temp_data_dir, store, summary):
        transcript_path = Path(temp_data_dir) / "elsewhere" / "2024-01-01T00-00-00-000Z-transcript.json"

        path = store.save_summary(summary, transcript_path)

        assert path == transcript_path.with_name("2024-01-01T00-00-00-000Z-summary.md")
        assert path.exists()

    def test_writes_leave_no_temp_files(self, store, sample_transcript, summary):
        transcript_path = store.save_transcript(sample_transcript)
        store.save_summary(summary, transcript_path)

        assert sorted(p.name for p in store.data_dir.iterdir()) == [
            "2024-01-01T00-00-00-000Z-summary.md",
            "2024-01-01T00-00-00-000Z-transcript.json",
        ]

    def test_failed_write_keeps_previous_file(self, store, sample_transcript):
        path = store.save_transcript(sample_transcript)
        original = path.read_text(encoding="utf-8")

        with patch("opennotes.storage.artifact_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                store.save_transcript(sample_transcript, metadata={"retry": True})

        assert path.read_text(encoding="utf-8") == original
        assert [p.name for p in store.data_dir.iterdir()] == [path.name]

    def test_save_and_cleanup_temp_audio(self, store):
        artifact = BinaryArtifact(data=b"OggS", mime_type="audio/ogg;codecs=opus", extension="ogg",
                                  sample_rate=48000, channels=2, duration_seconds=1.0)

        path = store.save_temp_audio(artifact)

        assert path.parent == store.temp_dir
        assert path.name == "open-notes-2024-01-01T00-00-00-000Z.ogg"
        assert path.read_bytes() == b"OggS"
        assert store.cleanup_temp_file(path) is True
        assert not path.exists()

    def test_cleanup_failure_is_logged(self, store, caplog):
        missing = store.temp_dir / "open-notes-missing.ogg"

        with caplog.at_level(logging.ERROR, logger="opennotes.storage.artifact_store"):
            assert store.cleanup_temp_file(missing) is False

        assert "Failed to cleanup temp file" in caplog.text

    def test_list_artifact_pairs(self, temp_data_dir, sample_transcript, summary):
        stamps = iter([
            datetime(2024, 1, 1, tzinfo=timezone.utc),
            datetime(2024, 1, 2, tzinfo=timezone.utc),
        ])
        store = ArtifactStore(Path(temp_data_dir) / "OpenNotes", clock=lambda: next(stamps))
        first = store.save_transcript(sample_transcript)
        store.save_transcript(sample_transcript)
        store.save_summary(summary, first)

        pairs = store.list_artifact_pairs()

        assert [p.prefix for p in pairs] == ["2024-01-01T00-00-00-000Z", "2024-01-02T00-00-00-000Z"]
        assert pairs[0].summary_path == store.data_dir / "2024-01-01T00-00-00-000Z-summary.md"
        assert pairs[1].summary_path is None

    def test_list_pairs_without_directory(self, store):
        assert store.list_artifact_pairs() == []

    def test_list_pairs_skips_unrecognized_names(self, store, sample_transcript):
        path = store.save_transcript(sample_transcript)
        (store.data_dir / "-transcript.json").write_text("{}")

        pairs = store.list_artifact_pairs()

        assert [p.transcript_path for p in pairs] == [path]

    def test_load_transcript(self, store, sample_transcript):
        path = store.save_transcript(sample_transcript)

        assert store.load_transcript(path) == sample_transcript

    def test_render_summary_without_optional_sections(self):
        bare = Summary(id="s", transcript_id="t", context="c", summary_markdown="body",
                       generated_at="now")

        content = render_summary_markdown(bare)

        assert "## Participants" not in content
        assert "## Action Items" not in content
        assert "body" in content
