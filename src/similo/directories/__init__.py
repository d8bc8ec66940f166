"""Directory registration module."""

from similo.directories.ops import (
    AddDirectoryResult,
    DirectoryInfo,
    DirectoryOps,
    resolve_directory_path,
)

__all__ = ["AddDirectoryResult", "DirectoryInfo", "DirectoryOps", "resolve_directory_path"]
