"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (SIMILO__SECTION__KEY)
3. YAML config (<home>/config.yaml)
4. Built-in defaults (this file)

Environment Variable Format:
    SIMILO__<SECTION>__<KEY>=<VALUE>

Examples:
    SIMILO__LOGGING__LEVEL=DEBUG
    SIMILO__SERVER__PORT=8080
    SIMILO__OLLAMA__MODEL=mxbai-embed-large
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        SIMILO__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every queued change.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class OllamaConfig(BaseModel):
    """Embedding server configuration.

    Env vars:
        SIMILO__OLLAMA__HOST: Ollama base URL
        SIMILO__OLLAMA__MODEL: Embedding model name
        SIMILO__OLLAMA__TIMEOUT_SEC: Per-request timeout
    """

    host: str = Field(
        default="http://localhost:11434",
        description="Ollama base URL.",
    )
    model: str = Field(
        default="nomic-embed-text",
        description="Embedding model. Changing it wipes the index on next start.",
    )
    timeout_sec: float = Field(
        default=30.0,
        description="Timeout for a single embedding request.",
    )

    @field_validator("host")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class ServerConfig(BaseModel):
    """Server configuration.

    Env vars:
        SIMILO__SERVER__HOST: Bind address (default: 127.0.0.1)
        SIMILO__SERVER__PORT: Port number (default: 11435)
        SIMILO__SERVER__DEBOUNCE_SEC: Watcher debounce window
    """

    host: str = Field(
        default="127.0.0.1",
        description="Bind address. Use 0.0.0.0 for network access (security risk).",
    )
    port: int = Field(default=11435, description="Server port.")
    debounce_sec: float = Field(
        default=0.5,
        description="Quiet period the watcher waits for before publishing a batch of changes.",
    )
    shutdown_timeout_sec: float = Field(
        default=10.0,
        description="Graceful shutdown timeout for the watcher and worker.",
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not (0 <= v <= 65535):
            raise ValueError(f"Port must be 0-65535, got {v}")
        return v


class IndexingConfig(BaseModel):
    """Content eligibility rules.

    Env vars:
        SIMILO__INDEXING__MAX_FILE_SIZE: Skip files larger than this (bytes)
    """

    extensions: list[str] = Field(
        default_factory=lambda: [".md", ".txt"],
        description="File extensions eligible for indexing.",
    )
    ignore_patterns: list[str] = Field(
        default_factory=lambda: ["node_modules", ".git", "*.min.js", "*.min.css"],
        description="Glob patterns matched against the full path and each path component.",
    )
    max_file_size: int = Field(
        default=100 * 1024,
        description="Skip files larger than this (bytes).",
    )

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

    @field_validator("max_file_size")
    @classmethod
    def validate_max_file_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Must be >= 1, got {v}")
        return v


class WorkerConfig(BaseModel):
    """Indexing worker configuration.

    Env vars:
        SIMILO__WORKER__IDLE_POLL_SEC: Wait between polls of an empty queue
    """

    idle_poll_sec: float = Field(
        default=1.0,
        description="How long the worker waits when the queue is empty.",
    )


class SearchConfig(BaseModel):
    """Search configuration.

    Env vars:
        SIMILO__SEARCH__DEFAULT_LIMIT: Default number of results
        SIMILO__SEARCH__OVERFETCH_FACTOR: Candidate multiple for path-filtered search
    """

    default_limit: int = Field(default=10, description="Default search results.")
    overfetch_factor: int = Field(
        default=2,
        description="Initial candidate multiple fetched before filtering by path prefix.",
    )

    @field_validator("overfetch_factor", "default_limit")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Must be >= 1, got {v}")
        return v


class SimiloConfig(BaseModel):
    """Root configuration for Similo.

    All settings can be configured via:
    1. Environment variables: SIMILO__SECTION__KEY
    2. YAML config file (<home>/config.yaml)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
