from fastapi import UploadFile
from pathlib import Path
from typing import Iterable, Optional
import logging
import os
import uuid

from errors import UploadError

CHUNK_SIZE = 1024 * 1024
PARTIAL_SUFFIX = ".part"


class UploadStore:
    """Applicant documents on the local filesystem, addressed by base name."""

    def __init__(self, directory, max_bytes: int, allowed_extensions: Iterable[str] = ()):
        self.directory = Path(directory)
        self.max_bytes = max_bytes
        self.allowed_extensions = {ext.lower() for ext in allowed_extensions}

    def ensure_dir(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def check(self, upload: UploadFile) -> str:
        """Reject a disallowed document type; returns the lowercased extension."""
        original = os.path.basename(upload.filename or "")
        ext = Path(original).suffix.lower()
        if self.allowed_extensions and ext not in self.allowed_extensions:
            raise UploadError(f"Unsupported file type: {original or 'unnamed file'}")
        return ext

    async def save(self, upload: UploadFile) -> str:
        """Store ``upload`` under a fresh server-generated name and return that name."""
        original = os.path.basename(upload.filename or "")
        ext = self.check(upload)

        self.ensure_dir()
        name = f"{uuid.uuid4().hex}{ext}"
        dest = self.directory / name
        tmp = dest.with_suffix(dest.suffix + PARTIAL_SUFFIX)
        written = 0
        with tmp.open("wb") as f:
            while chunk := await upload.read(CHUNK_SIZE):
                written += len(chunk)
                if written > self.max_bytes:
                    break
                f.write(chunk)
        if written > self.max_bytes:
            tmp.unlink(missing_ok=True)
            raise UploadError(f"File upload error: {original} exceeds {self.max_bytes // (1024 * 1024)} MB")
        tmp.replace(dest)
        logging.info(f"Stored upload {original!r} as {name} ({written} bytes)")
        return name

    def resolve(self, filename: str) -> Optional[Path]:
        name = os.path.basename(filename or "")
        if name in ("", ".", "..") or name.endswith(PARTIAL_SUFFIX):
            return None
        path = self.directory / name
        if path.resolve().parent != self.directory.resolve():
            return None
        if not path.is_file():
            return None
        return path
