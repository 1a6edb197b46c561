"""On-disk cache for synthesized story narration.

Files are named after the SHA-256 of the narrated text so the same text is
only synthesized once.
"""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

AUDIO_EXTENSION = ".mp3"
AUDIO_MEDIA_TYPE = "audio/mpeg"

_FILENAME_RE = re.compile(r"^[0-9a-f]{64}\.mp3$")


def hash_text(text: str) -> str:
    """SHA-256 hex digest of the narrated text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class AudioCache:
    """Directory of cached narration files."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def filename_for(self, text: str) -> str:
        return f"{hash_text(text)}{AUDIO_EXTENSION}"

    def resolve(self, filename: str) -> Path:
        """Map a public filename to its path inside the cache.

        Raises:
            ValueError: If the name is not a cache filename
        """
        if not _FILENAME_RE.match(filename):
            raise ValueError(f"Invalid audio filename: {filename!r}")
        return self.directory / filename

    def get(self, text: str) -> bytes | None:
        path = self.directory / self.filename_for(text)
        if not path.is_file():
            return None
        return path.read_bytes()

    def put(self, text: str, audio: bytes) -> str:
        """Store narration for ``text`` and return its filename."""
        self.directory.mkdir(parents=True, exist_ok=True)
        filename = self.filename_for(text)
        (self.directory / filename).write_bytes(audio)
        logger.info("Cached narration %s (%d bytes)", filename, len(audio))
        return filename

    def evict(self, text: str) -> bool:
        """Remove the narration cached for ``text``.

        Returns:
            True if a file was removed, False if nothing was cached
        """
        path = self.directory / self.filename_for(text)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("Tried to evict missing narration %s", path.name)
            return False
        logger.info("Evicted narration %s", path.name)
        return True
