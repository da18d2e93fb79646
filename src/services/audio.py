"""Audio artifact storage for the Session Transcription Service.

Uploads arrive already validated by the upload layer; this module only
places them in permanent storage and removes them again.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from src.config import get_settings
from src.models import Channel

logger = logging.getLogger(__name__)


@dataclass
class AudioUpload:
    """An accepted audio artifact handed over by the upload layer.

    Attributes:
        path: Filesystem path of the artifact.
        original_name: Client-side filename.
        size: Size in bytes.
        mime_type: Declared MIME type.
        channel: Channel the artifact was captured on.
        segment_index: Position of the artifact within a segmented capture.
    """

    path: str
    original_name: str
    size: int
    mime_type: str
    channel: Channel = Channel.INPUT
    segment_index: int = 0


def store_audio_file(upload: AudioUpload, upload_dir: str | Path | None = None) -> AudioUpload:
    """Move an uploaded temporary file into permanent storage.

    The stored file gets a UUID name that keeps the original extension.

    Args:
        upload: The accepted upload, pointing at its temporary file.
        upload_dir: Target directory. Defaults to settings.UPLOAD_PATH.

    Returns:
        A copy of the upload pointing at the stored file.
    """
    target_dir = Path(upload_dir or get_settings().UPLOAD_PATH)
    target_dir.mkdir(parents=True, exist_ok=True)

    extension = Path(upload.original_name).suffix.lower()
    target = target_dir / f"{uuid4()}{extension}"
    shutil.move(upload.path, target)

    logger.info(
        f"Stored audio file {upload.original_name} ({upload.size} bytes) as {target.name}"
    )

    return AudioUpload(
        path=str(target),
        original_name=upload.original_name,
        size=upload.size,
        mime_type=upload.mime_type,
        channel=upload.channel,
        segment_index=upload.segment_index,
    )


def delete_audio_file(path: str | Path) -> bool:
    """Delete a stored audio file.

    Args:
        path: Path of the file to remove.

    Returns:
        True if a file was removed, False if it was already gone.
    """
    file_path = Path(path)
    if not file_path.exists():
        logger.debug(f"Audio file already removed: {file_path}")
        return False

    file_path.unlink()
    logger.debug(f"Deleted audio file: {file_path}")
    return True
