"""Content access - eligibility rules, reading and directory scanning.

Pure filesystem I/O. No index dependency. Every other component delegates
eligibility (extension allow-list, ignore globs, size ceiling) to FileReader.
"""

from __future__ import annotations

import fnmatch
import os
import stat as stat_module
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class FileStat:
    """Modification time (POSIX seconds) and size (bytes) of an eligible file."""

    mtime: float
    size: int


@dataclass(frozen=True)
class FileContent:
    """Decoded text of an eligible file."""

    path: str
    content: str
    mtime: float
    size: int


class FileReader:
    """Reads eligible text files.

    A file is eligible when it is a regular file, its extension is in the
    allow-list, no ignore glob matches it and it is not larger than
    ``max_file_size``.
    """

    def __init__(
        self,
        extensions: Iterable[str],
        ignore_patterns: Iterable[str],
        max_file_size: int,
    ) -> None:
        self.extensions = frozenset(ext.lower() for ext in extensions)
        self.ignore_patterns = tuple(ignore_patterns)
        self.max_file_size = max_file_size

    def is_supported(self, path: str | Path) -> bool:
        """Extension allowed and path not ignored. Does not touch the disk."""
        if Path(path).suffix.lower() not in self.extensions:
            return False
        return not self.should_ignore(path)

    def should_ignore(self, path: str | Path) -> bool:
        """True when any ignore glob matches the full path or one of its components."""
        path_str = str(path)
        parts = Path(path_str).parts
        for pattern in self.ignore_patterns:
            if fnmatch.fnmatchcase(path_str, pattern):
                return True
            if any(fnmatch.fnmatchcase(part, pattern) for part in parts):
                return True
        return False

    def stat(self, path: str | Path) -> FileStat | None:
        """Eligibility check without reading content. None when ineligible."""
        if not self.is_supported(path):
            return None
        try:
            st = os.stat(path)
        except OSError:
            return None
        if not stat_module.S_ISREG(st.st_mode):
            return None
        if st.st_size > self.max_file_size:
            logger.warning(
                "file_too_large",
                path=str(path),
                size=st.st_size,
                max_size=self.max_file_size,
            )
            return None
        return FileStat(mtime=st.st_mtime, size=st.st_size)

    def read(self, path: str | Path) -> FileContent | None:
        """Read an eligible file as UTF-8. None when ineligible or unreadable."""
        file_stat = self.stat(path)
        if file_stat is None:
            return None
        try:
            content = Path(path).read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.warning("file_not_utf8", path=str(path))
            return None
        except OSError as e:
            logger.warning("file_read_failed", path=str(path), error=str(e))
            return None
        return FileContent(
            path=str(path), content=content, mtime=file_stat.mtime, size=file_stat.size
        )

    def scan_directory(self, root: str | Path) -> list[str]:
        """Absolute paths of every eligible file under root, sorted."""
        root_path = Path(root).absolute()
        found: list[str] = []

        def _on_error(error: OSError) -> None:
            logger.warning("directory_scan_failed", path=error.filename, error=error.strerror)

        for dirpath, dirnames, filenames in os.walk(root_path, onerror=_on_error):
            # Prune in-place: never descend into ignored directories
            dirnames[:] = [d for d in dirnames if not self.should_ignore(os.path.join(dirpath, d))]
            for filename in filenames:
                file_path = os.path.join(dirpath, filename)
                if self.stat(file_path) is not None:
                    found.append(file_path)

        found.sort()
        return found
