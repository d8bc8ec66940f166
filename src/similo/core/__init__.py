"""Core module exports."""

from similo.core.errors import (
    ConfigError,
    DirectoryError,
    EmbeddingError,
    EmbeddingErrorKind,
    ErrorCode,
    InternalError,
    SimiloError,
    StoreError,
)
from similo.core.logging import (
    clear_request_id,
    configure_logging,
    get_log_file_path,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Errors
    "ConfigError",
    "DirectoryError",
    "EmbeddingError",
    "EmbeddingErrorKind",
    "ErrorCode",
    "InternalError",
    "SimiloError",
    "StoreError",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_log_file_path",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
