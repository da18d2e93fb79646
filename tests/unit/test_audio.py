"""Unit tests for audio artifact storage."""

from pathlib import Path

from src.models import Channel
from src.services.audio import AudioUpload, delete_audio_file, store_audio_file


class TestStoreAudioFile:
    """Tests for store_audio_file()."""

    def test_moves_upload_into_storage(self, tmp_path: Path) -> None:
        """The temporary file is moved under a UUID name with its extension."""
        temp = tmp_path / "incoming" / "tmp-upload"
        temp.parent.mkdir()
        temp.write_bytes(b"audio")
        upload = AudioUpload(
            path=str(temp),
            original_name="Meeting.WEBM",
            size=5,
            mime_type="audio/webm",
            channel=Channel.OUTPUT,
            segment_index=2,
        )

        stored = store_audio_file(upload, upload_dir=tmp_path / "store")

        stored_path = Path(stored.path)
        assert stored_path.parent == tmp_path / "store"
        assert stored_path.suffix == ".webm"
        assert stored_path.read_bytes() == b"audio"
        assert not temp.exists()
        assert stored.original_name == "Meeting.WEBM"
        assert stored.channel is Channel.OUTPUT
        assert stored.segment_index == 2

    def test_defaults_to_configured_upload_path(self, tmp_path: Path, monkeypatch) -> None:
        """Without an explicit directory the configured UPLOAD_PATH is used."""
        from src.config import get_settings

        target = tmp_path / "configured"
        monkeypatch.setattr(get_settings(), "UPLOAD_PATH", str(target))
        temp = tmp_path / "tmp-upload.wav"
        temp.write_bytes(b"a")
        upload = AudioUpload(
            path=str(temp), original_name="a.wav", size=1, mime_type="audio/wav"
        )

        stored = store_audio_file(upload)

        assert Path(stored.path).parent == target


class TestDeleteAudioFile:
    """Tests for delete_audio_file()."""

    def test_removes_existing_file(self, tmp_path: Path) -> None:
        """An existing file is removed and True returned."""
        path = tmp_path / "a.wav"
        path.write_bytes(b"a")

        assert delete_audio_file(path) is True
        assert not path.exists()

    def test_missing_file_returns_false(self, tmp_path: Path) -> None:
        """A file that is already gone is not an error."""
        assert delete_audio_file(tmp_path / "gone.wav") is False
