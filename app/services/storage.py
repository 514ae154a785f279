"""Local filesystem storage for meter photos."""

import logging
import os
import uuid
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class FileTooLargeError(Exception):
    """The uploaded stream exceeded the configured size limit."""


class PhotoStorage:
    """Stores photos as flat files inside a single uploads directory."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, filename: str) -> Path:
        """Absolute path of a stored file; names never escape the root."""
        name = Path(filename).name
        if not name or name != filename:
            raise ValueError(f"Invalid photo filename: {filename!r}")
        return self.root / name

    def exists(self, filename: str) -> bool:
        return self.path_for(filename).is_file()

    def save(self, filename: str, source: BinaryIO, max_bytes: int) -> int:
        """Stream ``source`` into ``filename`` and return the number of bytes written.

        Data goes to a temporary file first and replaces the target only once
        it is complete, so readers never observe a partial photo.
        """
        target = self.path_for(filename)
        tmp_path = self.root / f".{filename}.{uuid.uuid4().hex}.part"
        written = 0
        try:
            with open(tmp_path, "wb") as out:
                while True:
                    chunk = source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > max_bytes:
                        raise FileTooLargeError(filename)
                    out.write(chunk)
            os.replace(tmp_path, target)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.info("Stored photo %s (%d bytes)", filename, written)
        return written

    def stage_delete(self, filename: str) -> Path | None:
        """Move a photo aside ahead of deleting its record.

        Returns the staged path, or None when the file does not exist.
        """
        source = self.path_for(filename)
        if not source.is_file():
            logger.warning("Photo %s not found in storage", filename)
            return None
        staged = self.root / f".{filename}.{uuid.uuid4().hex}.deleting"
        os.replace(source, staged)
        return staged

    def restore(self, staged: Path | None, filename: str) -> None:
        """Undo ``stage_delete`` after the record deletion failed."""
        if staged is None:
            return
        os.replace(staged, self.path_for(filename))
        logger.info("Restored photo %s", filename)

    def purge(self, staged: Path | None) -> None:
        """Remove a staged photo for good."""
        if staged is None:
            return
        try:
            staged.unlink()
        except FileNotFoundError:
            pass

