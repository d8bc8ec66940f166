"""Similo daemon - HTTP server with file watching and background indexing."""

from similo.daemon.app import create_app
from similo.daemon.lifecycle import ServerController, build_controller
from similo.daemon.watcher import FileWatcher
from similo.daemon.worker import IndexingWorker

__all__ = [
    "FileWatcher",
    "IndexingWorker",
    "ServerController",
    "build_controller",
    "create_app",
]
