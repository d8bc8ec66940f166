"""Similo error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Directory registry
- 4xxx: Embedding
- 5xxx: Vector store
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Directory (3xxx)
    DIRECTORY_INVALID_PATH = 3001
    DIRECTORY_NOT_REGISTERED = 3002

    # Embedding (4xxx)
    EMBEDDING_CONNECTION_FAILED = 4001
    EMBEDDING_MODEL_NOT_FOUND = 4002
    EMBEDDING_CONTEXT_LENGTH_EXCEEDED = 4003
    EMBEDDING_SERVER_ERROR = 4004

    # Vector store (5xxx)
    STORE_DIMENSION_MISMATCH = 5001

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


class EmbeddingErrorKind(str, Enum):
    """Closed set of embedding failure kinds."""

    CONNECTION_FAILED = "connection_failed"
    MODEL_NOT_FOUND = "model_not_found"
    CONTEXT_LENGTH_EXCEEDED = "context_length_exceeded"
    SERVER_ERROR = "server_error"


_EMBEDDING_KINDS: dict[ErrorCode, EmbeddingErrorKind] = {
    ErrorCode.EMBEDDING_CONNECTION_FAILED: EmbeddingErrorKind.CONNECTION_FAILED,
    ErrorCode.EMBEDDING_MODEL_NOT_FOUND: EmbeddingErrorKind.MODEL_NOT_FOUND,
    ErrorCode.EMBEDDING_CONTEXT_LENGTH_EXCEEDED: EmbeddingErrorKind.CONTEXT_LENGTH_EXCEEDED,
    ErrorCode.EMBEDDING_SERVER_ERROR: EmbeddingErrorKind.SERVER_ERROR,
}


@dataclass(frozen=True, slots=True)
class SimiloError(Exception):
    """Base error with structured context for HTTP and tool responses."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(SimiloError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class DirectoryError(SimiloError):
    """Directory registry validation errors. Raised before any mutation."""

    @classmethod
    def invalid_path(cls, path: str, reason: str) -> "DirectoryError":
        return cls(
            code=ErrorCode.DIRECTORY_INVALID_PATH,
            message=f"Invalid directory {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def not_registered(cls, path: str) -> "DirectoryError":
        return cls(
            code=ErrorCode.DIRECTORY_NOT_REGISTERED,
            message=f"Directory is not registered: {path}",
            details={"path": path},
        )


class EmbeddingError(SimiloError):
    """Embedding capability failure, discriminated by ``kind``."""

    @property
    def kind(self) -> EmbeddingErrorKind:
        return _EMBEDDING_KINDS.get(self.code, EmbeddingErrorKind.SERVER_ERROR)

    @classmethod
    def connection_failed(cls, host: str, reason: str) -> "EmbeddingError":
        return cls(
            code=ErrorCode.EMBEDDING_CONNECTION_FAILED,
            message=f"Cannot connect to embedding server at {host}: {reason}",
            retryable=True,
            details={"host": host, "reason": reason},
        )

    @classmethod
    def model_not_found(cls, model: str) -> "EmbeddingError":
        return cls(
            code=ErrorCode.EMBEDDING_MODEL_NOT_FOUND,
            message=f"Embedding model not found: {model}",
            details={"model": model},
        )

    @classmethod
    def context_length_exceeded(cls, model: str, input_chars: int) -> "EmbeddingError":
        return cls(
            code=ErrorCode.EMBEDDING_CONTEXT_LENGTH_EXCEEDED,
            message=f"Input of {input_chars} characters exceeds the context length of {model}",
            details={"model": model, "input_chars": input_chars},
        )

    @classmethod
    def server_error(cls, reason: str, status_code: int | None = None) -> "EmbeddingError":
        details: dict[str, Any] = {"reason": reason}
        if status_code is not None:
            details["status_code"] = status_code
        return cls(
            code=ErrorCode.EMBEDDING_SERVER_ERROR,
            message=f"Embedding server error: {reason}",
            details=details,
        )


class StoreError(SimiloError):
    """Vector store invariant violations."""

    @classmethod
    def dimension_mismatch(cls, path: str, expected: int, actual: int) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_DIMENSION_MISMATCH,
            message=f"Embedding for {path} has {actual} dimensions, index expects {expected}",
            details={"path": path, "expected": expected, "actual": actual},
        )


class InternalError(SimiloError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
