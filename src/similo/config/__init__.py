"""Config module exports."""

from similo.config.loader import SimiloPaths, SimiloSettings, get_paths, load_config
from similo.config.models import (
    IndexingConfig,
    LoggingConfig,
    OllamaConfig,
    SearchConfig,
    ServerConfig,
    SimiloConfig,
    WorkerConfig,
)

__all__ = [
    "load_config",
    "get_paths",
    "SimiloConfig",
    "SimiloPaths",
    "SimiloSettings",
    "IndexingConfig",
    "LoggingConfig",
    "OllamaConfig",
    "SearchConfig",
    "ServerConfig",
    "WorkerConfig",
]
