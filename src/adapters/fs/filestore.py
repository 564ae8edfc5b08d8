"""
Filesystem blob store for uploaded media.

Paths are always resolved inside base_path; anything escaping it is refused.
"""

from __future__ import annotations

import re
from pathlib import Path

SAFE_NAME_PATTERN = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str) -> str:
    """Basename with anything outside [A-Za-z0-9._-] replaced by '-'."""
    name = Path(filename.replace("\\", "/")).name
    name = SAFE_NAME_PATTERN.sub("-", name).strip(".-")
    return name or "upload"


class FileSystemStore:
    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, relative: str) -> Path:
        target = (self.base_path / relative).resolve()
        if not target.is_relative_to(self.base_path):
            raise ValueError(f"Path escapes media root: {relative}")
        return target

    def save(self, relative: str, data: bytes) -> str:
        """Write bytes and return the path relative to the store root."""
        target = self._resolve(relative)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return target.relative_to(self.base_path).as_posix()

    def read(self, relative: str) -> bytes:
        """Raises FileNotFoundError when missing."""
        return self._resolve(relative).read_bytes()

    def remove(self, relative: str) -> bool:
        target = self._resolve(relative)
        if not target.exists():
            return False
        target.unlink()
        return True
