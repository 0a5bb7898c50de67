"""Backup artifacts: a finished backup file prepared for download."""

import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator

import aiofiles
from unidecode import unidecode

from gamevault.services.errors import NotFoundError

CHUNK_SIZE = 1024 * 1024  # 1MB

_ILLEGAL_RE = re.compile(r'[/?<>\\:*|"]')
_CONTROL_RE = re.compile(r"[\x00-\x1f\x80-\x9f]")
_RESERVED_RE = re.compile(r"^\.+$")
_WINDOWS_RESERVED_RE = re.compile(r"^(con|prn|aux|nul|com[0-9]|lpt[0-9])(\..*)?$", re.IGNORECASE)
_WINDOWS_TRAILING_RE = re.compile(r"[. ]+$")


def sanitize_filename(name: str) -> str:
    """Make a filename safe for disks and Content-Disposition headers.

    Non-ASCII characters are transliterated, then characters that are
    illegal in filenames are removed.
    """
    name = unidecode(name)
    name = _ILLEGAL_RE.sub("", name)
    name = _CONTROL_RE.sub("", name)
    name = _RESERVED_RE.sub("", name)
    name = _WINDOWS_RESERVED_RE.sub("", name)
    name = _WINDOWS_TRAILING_RE.sub("", name)
    return name.encode("ascii", errors="ignore")[:255].decode("ascii")


@dataclass(frozen=True)
class BackupArtifact:
    source_path: Path
    size_bytes: int
    mime_type: str
    suggested_filename: str

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Disposition": f'attachment; filename="{self.suggested_filename}"',
            "Content-Length": str(self.size_bytes),
        }

    async def iter_bytes(self, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
        """Stream the artifact file sequentially."""
        async with aiofiles.open(self.source_path, "rb") as f:
            while chunk := await f.read(chunk_size):
                yield chunk


def build_artifact(path: str | Path) -> BackupArtifact:
    """Describe a backup file on disk as a downloadable artifact."""
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(f"Backup file '{path}' does not exist.")

    mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return BackupArtifact(
        source_path=path,
        size_bytes=path.stat().st_size,
        mime_type=mime_type,
        suggested_filename=sanitize_filename(path.name),
    )
